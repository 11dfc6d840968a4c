"""Shared utilities: configuration, schema validation, prompts, model CLI."""
