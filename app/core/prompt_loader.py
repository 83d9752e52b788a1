"""
Prompt loader for versioned LLM prompts.

Prompts live outside the codebase under ``prompts/<component>/<name>_v<version>.txt``
so they can be revised and versioned without touching Python code.

Usage:
    template = load_prompt("chat_relay", "system", version="1.0.0")
    prompt = render_prompt("chat_relay", "system", fleet_data=..., command_result=...)
"""

from functools import lru_cache
from pathlib import Path

PROMPTS_DIR = Path(__file__).parent.parent.parent / "prompts"


@lru_cache(maxsize=32)
def load_prompt(component: str, prompt_name: str, version: str = "1.0.0") -> str:
    """
    Load a versioned prompt template.

    Raises:
        FileNotFoundError: If the prompt file does not exist
    """
    prompt_file = PROMPTS_DIR / component / f"{prompt_name}_v{version}.txt"

    if not prompt_file.exists():
        raise FileNotFoundError(
            f"Prompt not found: {prompt_file}. "
            f"Expected format: prompts/{component}/{prompt_name}_v{version}.txt"
        )

    return prompt_file.read_text(encoding="utf-8")


def render_prompt(component: str, prompt_name: str, version: str = "1.0.0", **values) -> str:
    """Load a template and fill its ``{placeholders}`` with ``values``."""
    return load_prompt(component, prompt_name, version).format(**values)
