"""
storymap show - Show a story map as a tree of lanes and activities.
"""

from rich.console import Console
from rich.markup import escape
from rich.tree import Tree

from storymapper.layout import RenderModel, project_layout
from storymapper.lib.config import StoryMapperConfig
from storymapper.store import DocumentStore

PRIORITY_STYLES = {"high": "red", "medium": "yellow", "low": "green"}


def build_tree(model: RenderModel) -> Tree:
    """Render a layout model as a rich Tree."""
    tree = Tree(f"[bold]{escape(model.title)}[/bold] [dim]({model.story_map_id})[/dim]")
    for lane in model.lanes:
        lane_node = tree.add(f"[bold cyan]{escape(lane.title)}[/bold cyan] [dim]{lane.epic_id}[/dim]")
        for column in lane.activities:
            column_node = lane_node.add(f"[bold]{escape(column.title)}[/bold] [dim]{column.feature_id}[/dim]")
            if column.touchpoints:
                touch_node = column_node.add("[dim]Touchpoints[/dim]")
                for label in column.touchpoints:
                    touch_node.add(escape(label))
            for card in column.stories:
                style = PRIORITY_STYLES.get(card.task.priority, "white")
                column_node.add(
                    f"[{card.color}]■[/{card.color}] {escape(card.task.title)} "
                    f"[{style}]{card.task.priority}[/{style}] [dim]{card.task.id}[/dim]"
                )
            if column.supporting_needs:
                needs_node = column_node.add("[dim]Supporting needs[/dim]")
                for need in column.supporting_needs:
                    needs_node.add(
                        f"[{need.color}]■[/{need.color}] {escape(need.requirement.title)} "
                        f"[dim]({need.requirement.type}, for {escape(need.task_title)})[/dim]"
                    )
    return tree


def cmd_show(args, config: StoryMapperConfig, store: DocumentStore) -> int:
    """Show a stored story map (current by default)."""
    story_map = store.get(args.id) if args.id else store.get_current()
    if story_map is None:
        target = f"'{args.id}'" if args.id else "current story map"
        print(f"ERROR: {target} not found")
        return 1

    sort = args.sort or config.sort_by_priority
    model = project_layout(story_map, sort_by_priority=sort)
    Console().print(build_tree(model))
    return 0
