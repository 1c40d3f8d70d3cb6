"""
Prompts Module - prompt templates for the watch pipeline.

Usage:
    from prompts import get_prompt

    prompt = get_prompt("watcher", identity="...", tier=1, posts="...", denylist="BTC, ETH")

Prompt Files:
- watcher.md: Token signal extraction from a batch of posts
- agent.md: Persona rewrite of the latest signal for agent posts
"""

from ._loader import PromptLoader, get_prompt, list_prompts

__all__ = [
    "PromptLoader",
    "get_prompt",
    "list_prompts",
]
