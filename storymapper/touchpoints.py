"""
Touchpoint inference.

Derives a display-only label "platform/role/[domain/]page" for a user
story from its title and description. Each step is an ordered table of
(keywords, result) rules; the first rule whose keywords appear in the text
wins, so the order of the tables is the priority order.

Labels are Chinese when the story text contains CJK characters, English
otherwise.
"""

import re
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional

from storymapper.models import UserStory
from storymapper.templates import detect_language

# Results are (zh, en) label pairs

WEB_PLATFORM = ("Web平台", "Web platform")
MINI_PROGRAM = ("小程序", "Mini-program")
PC_CLIENT = ("PC客户端", "PC client")
WEB_ADMIN = ("Web管理后台", "Web admin console")

PLATFORM_RULES = (
    (("网页", "网站", "web", "浏览器", "h5"), WEB_PLATFORM),
    (("小程序", "微信", "wechat", "mini program", "mini-program"), MINI_PROGRAM),
    (("pc", "桌面", "客户端", "desktop"), PC_CLIENT),
    (("后台", "admin", "console", "运营"), WEB_ADMIN),
)

MANAGEMENT_KEYWORDS = (
    "管理", "配置", "设置", "权限", "统计", "审核",
    "manage", "config", "setting", "permission",
)

ADMIN_ROLE = ("管理员", "Administrator")
SYSTEM_ROLE = ("系统", "System")
END_USER = ("用户", "End user")

ROLE_RULES = (
    (("管理员", "运营", "运维", "后台", "admin", "operator", "审核", "管理"), ADMIN_ROLE),
    (("系统", "自动", "定时", "system", "automatic", "scheduled"), SYSTEM_ROLE),
)


@dataclass(frozen=True)
class Domain:
    name: str
    keywords: tuple
    prefix: tuple
    pages: tuple
    default_page: tuple


DOMAINS = (
    Domain(
        name="door-lock",
        keywords=("门锁", "智能锁", "开锁", "door lock", "smart lock"),
        prefix=("门锁", "Door lock"),
        pages=(
            (("指纹", "fingerprint"), ("指纹管理页", "Fingerprint page")),
            (("密码", "password", "passcode"), ("密码管理页", "Passcode page")),
            (("记录", "历史", "history", "log"), ("开锁记录页", "Unlock history page")),
            (("临时", "授权", "分享", "guest", "share"), ("授权管理页", "Access sharing page")),
            (("电量", "电池", "battery"), ("电量监控页", "Battery page")),
            (("绑定", "配对", "pair", "bind"), ("设备绑定页", "Pairing page")),
        ),
        default_page=("门锁控制页", "Lock control page"),
    ),
    Domain(
        name="charging-station",
        keywords=("充电桩", "充电站", "充电", "charging", "charger"),
        prefix=("充电桩", "Charger"),
        pages=(
            (("固件", "升级", "firmware", "upgrade", "ota"), ("固件升级页", "Firmware upgrade page")),
            (("配对", "绑定充电桩", "添加充电桩", "pairing", "pair"), ("配对页", "Pairing page")),
            (("解绑", "unbind"), ("解绑页", "Unbinding page")),
            (("状态", "监控", "实时", "status", "monitor"), ("状态监控页", "Status monitor page")),
            (("记录", "历史", "history", "record"), ("充电记录页", "Charging history page")),
            (("配置", "设置", "参数", "config", "setting"), ("参数配置页", "Configuration page")),
            (("权限", "授权", "permission", "access"), ("权限管理页", "Permissions page")),
            (("通知", "告警", "提醒", "notification", "alert"), ("通知设置页", "Notifications page")),
            (("统计", "分析", "报表", "analytics", "report"), ("数据统计页", "Analytics page")),
            (("远程", "启动", "停止", "remote", "start", "stop"), ("远程控制页", "Remote control page")),
            (("计费", "费用", "billing", "fee"), ("计费管理页", "Billing page")),
        ),
        default_page=("充电桩管理页", "Charger management page"),
    ),
    Domain(
        name="car-rental",
        keywords=("租车", "租赁", "car rental", "rent a car", "rental"),
        prefix=("租车", "Car rental"),
        pages=(
            (("预订", "预约", "book", "reserve"), ("车辆预订页", "Booking page")),
            (("取车", "pickup", "pick up"), ("取车页", "Pickup page")),
            (("还车", "return"), ("还车页", "Return page")),
            (("订单", "order"), ("订单页", "Orders page")),
            (("支付", "费用", "payment", "fee"), ("费用结算页", "Payment page")),
            (("选车", "车辆", "车型", "vehicle", "car"), ("选车页", "Vehicle selection page")),
        ),
        default_page=("租车首页", "Rental home page"),
    ),
    Domain(
        name="e-commerce",
        keywords=("电商", "商城", "购物", "商品", "ecommerce", "e-commerce", "shop", "cart", "product"),
        prefix=("商城", "Shop"),
        pages=(
            (("购物车", "cart"), ("购物车页", "Cart page")),
            (("结算", "下单", "checkout"), ("结算页", "Checkout page")),
            (("订单", "order"), ("订单页", "Orders page")),
            (("物流", "配送", "shipping", "delivery"), ("物流页", "Shipping page")),
            (("评价", "评论", "review"), ("评价页", "Reviews page")),
            (("搜索", "search"), ("商品搜索页", "Product search page")),
            (("详情", "detail"), ("商品详情页", "Product detail page")),
        ),
        default_page=("商城首页", "Shop home page"),
    ),
    Domain(
        name="social",
        keywords=("社交", "好友", "动态", "聊天", "social", "friend", "chat", "feed"),
        prefix=("社交", "Social"),
        pages=(
            (("聊天", "私信", "chat", "message"), ("聊天页", "Chat page")),
            (("好友", "关注", "friend", "follow"), ("好友页", "Friends page")),
            (("动态", "发布", "post", "feed"), ("动态页", "Feed page")),
            (("主页", "资料", "profile"), ("个人主页", "Profile page")),
        ),
        default_page=("社区首页", "Community home page"),
    ),
    Domain(
        name="task-management",
        keywords=("任务", "待办", "项目", "task", "todo", "project"),
        prefix=("任务", "Tasks"),
        pages=(
            (("看板", "board", "kanban"), ("任务看板页", "Task board page")),
            (("创建", "新建", "create"), ("任务创建页", "Task creation page")),
            (("分配", "指派", "assign"), ("任务分配页", "Assignment page")),
            (("进度", "progress"), ("进度跟踪页", "Progress page")),
            (("提醒", "截止", "remind", "deadline"), ("任务提醒页", "Reminders page")),
        ),
        default_page=("任务列表页", "Task list page"),
    ),
    Domain(
        name="auth",
        keywords=("登录", "注册", "密码", "验证码", "login", "sign in", "register", "sign up", "password"),
        prefix=("账号", "Account"),
        pages=(
            (("注册", "register", "sign up"), ("注册页", "Sign-up page")),
            (("重置", "忘记", "找回", "reset", "forgot"), ("密码重置页", "Password reset page")),
            (("验证", "verify", "verification"), ("验证页", "Verification page")),
            (("登录", "login", "sign in"), ("登录页", "Sign-in page")),
        ),
        default_page=("登录页", "Sign-in page"),
    ),
    Domain(
        name="payment",
        keywords=("支付", "付款", "充值", "退款", "payment", "refund", "checkout"),
        prefix=("支付", "Payment"),
        pages=(
            (("退款", "refund"), ("退款页", "Refund page")),
            (("充值", "top up", "recharge"), ("充值页", "Top-up page")),
            (("账单", "发票", "bill", "invoice"), ("账单页", "Billing page")),
        ),
        default_page=("支付页", "Payment page"),
    ),
    Domain(
        name="notification",
        keywords=("通知", "消息", "提醒", "推送", "notification", "notify", "message", "alert"),
        prefix=("消息", "Messages"),
        pages=(
            (("推送", "push"), ("推送设置页", "Push settings page")),
            (("设置", "setting"), ("通知设置页", "Notification settings page")),
        ),
        default_page=("消息中心页", "Message center page"),
    ),
    Domain(
        name="settings",
        keywords=("设置", "配置", "偏好", "setting", "config", "preference"),
        prefix=("设置", "Settings"),
        pages=(
            (("账号", "个人", "account", "profile"), ("账号设置页", "Account settings page")),
            (("隐私", "privacy"), ("隐私设置页", "Privacy settings page")),
            (("语言", "language"), ("语言设置页", "Language settings page")),
        ),
        default_page=("设置页", "Settings page"),
    ),
)

GENERIC_PAGE_RULES = (
    (("查看", "浏览", "详情", "view", "detail"), ("详情页", "Detail page")),
    (("添加", "新增", "创建", "add", "create", "new"), ("新建页", "Create page")),
    (("编辑", "修改", "更新", "edit", "update", "modify"), ("编辑页", "Edit page")),
    (("删除", "移除", "delete", "remove"), ("删除确认页", "Delete confirmation page")),
    (("搜索", "查找", "search", "find"), ("搜索页", "Search page")),
    (("列表", "list"), ("列表页", "List page")),
)
HOME_PAGE = ("首页", "Home page")


@dataclass(frozen=True)
class Touchpoint:
    platform: str
    role: str
    domain: Optional[str]
    page: str
    prefix: Optional[str] = None

    @property
    def label(self) -> str:
        parts = [self.platform, self.role]
        if self.prefix:
            parts.append(self.prefix)
        parts.append(self.page)
        return "/".join(parts)


@lru_cache(maxsize=None)
def _keyword_pattern(keywords: tuple) -> re.Pattern:
    """Latin keywords must start a word ("pair" never hits "repair");
    CJK keywords match anywhere."""
    parts = []
    for keyword in keywords:
        escaped = re.escape(keyword.lower())
        parts.append(rf"(?<![a-z0-9]){escaped}" if keyword.isascii() else escaped)
    return re.compile("|".join(parts))


def mentions(text: str, keywords) -> bool:
    """Case-insensitive keyword test for touchpoint rules."""
    return _keyword_pattern(tuple(keywords)).search((text or "").lower()) is not None


def _first_mention(text: str, rules, default=None):
    for keywords, result in rules:
        if mentions(text, keywords):
            return result
    return default


def _pick(pair: tuple, language: str) -> str:
    return pair[0] if language == "zh" else pair[1]


def infer_touchpoint_parts(task: UserStory) -> Touchpoint:
    text = f"{task.title} {task.description}"
    language = detect_language(text)

    platform = _first_mention(text, PLATFORM_RULES)
    if platform is None:
        platform = WEB_ADMIN if mentions(text, MANAGEMENT_KEYWORDS) else WEB_PLATFORM

    role = _first_mention(text, ROLE_RULES, END_USER)

    domain = next((d for d in DOMAINS if mentions(text, d.keywords)), None)
    if domain is not None:
        page = _first_mention(text, domain.pages, domain.default_page)
        return Touchpoint(
            platform=_pick(platform, language),
            role=_pick(role, language),
            domain=domain.name,
            page=_pick(page, language),
            prefix=_pick(domain.prefix, language),
        )

    page = _first_mention(task.title, GENERIC_PAGE_RULES, HOME_PAGE)
    return Touchpoint(
        platform=_pick(platform, language),
        role=_pick(role, language),
        domain=None,
        page=_pick(page, language),
    )


def infer_touchpoint(task: UserStory) -> str:
    """Return the touchpoint label for a user story."""
    return infer_touchpoint_parts(task).label
