"""
Prompt Loader - Load and format prompts from markdown files.

Prompts are stored as .md files next to this module and use
{variable_name} placeholders. Literal braces are written as {{ and }}.
"""
import re
from pathlib import Path
from typing import Optional, Dict, Any

from loguru import logger


class PromptLoader:
    """
    Load and format prompts from markdown files.

    Example:
        loader = PromptLoader()
        prompt = loader.format("watcher", identity="elonmusk", tier=1, posts="...", denylist="BTC")
    """

    # Singleton instance
    _instance: Optional["PromptLoader"] = None

    def __new__(cls) -> "PromptLoader":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance._initialized = False
        return cls._instance

    def __init__(self):
        if self._initialized:
            return

        self._prompts_dir = Path(__file__).parent
        self._cache: Dict[str, str] = {}
        self._initialized = True

    @property
    def prompts_dir(self) -> Path:
        return self._prompts_dir

    def get(self, prompt_name: str) -> str:
        """
        Get a raw prompt template by name (without .md extension).

        Raises:
            FileNotFoundError: If prompt file doesn't exist
        """
        if prompt_name in self._cache:
            return self._cache[prompt_name]

        prompt_path = self._prompts_dir / f"{prompt_name}.md"
        if not prompt_path.exists():
            raise FileNotFoundError(
                f"Prompt file not found: {prompt_path}\n"
                f"Available prompts: {self.list_prompts()}"
            )

        content = prompt_path.read_text(encoding="utf-8")
        self._cache[prompt_name] = content
        logger.debug(f"Loaded prompt: {prompt_name} ({len(content)} chars)")
        return content

    def format(self, prompt_name: str, **kwargs: Any) -> str:
        """
        Get a prompt and substitute its variables.

        Raises:
            ValueError: If a variable used by the template is missing
        """
        template = self.get(prompt_name)
        try:
            return template.format(**kwargs)
        except KeyError as e:
            logger.error(f"Missing variable in prompt '{prompt_name}': {e}")
            raise ValueError(
                f"Missing required variable {e} for prompt '{prompt_name}'"
            ) from e

    def list_prompts(self) -> list[str]:
        return sorted(f.stem for f in self._prompts_dir.glob("*.md"))

    def reload(self, prompt_name: str = None) -> None:
        """Clear cache to reload prompts from disk."""
        if prompt_name:
            self._cache.pop(prompt_name, None)
        else:
            self._cache.clear()

    def get_variables(self, prompt_name: str) -> list[str]:
        """Variable names used by a template, in order of first use."""
        template = self.get(prompt_name)
        # Drop escaped braces before matching
        template = template.replace("{{", "").replace("}}", "")
        matches = re.findall(r'\{([a-zA-Z_][a-zA-Z0-9_]*)\}', template)
        return list(dict.fromkeys(matches))


# ============================================
# CONVENIENCE FUNCTIONS
# ============================================

def get_prompt(prompt_name: str, **kwargs: Any) -> str:
    """
    Get and format a prompt.

    Example:
        from prompts import get_prompt
        prompt = get_prompt("watcher", identity="...", tier=2, posts="...", denylist="...")
    """
    loader = PromptLoader()
    if kwargs:
        return loader.format(prompt_name, **kwargs)
    return loader.get(prompt_name)


def list_prompts() -> list[str]:
    return PromptLoader().list_prompts()
