"""CLI utilities package."""

import json
from pathlib import Path
from typing import Any, Dict, Optional
import click
from ...utils.logging import get_logger

logger = get_logger("cli.utils")


def format_error(message: str, suggestion: Optional[str] = None) -> str:
    """
    Format error message with optional suggestion.

    Args:
        message: Error message
        suggestion: Optional suggestion or help text

    Returns:
        Formatted error string
    """
    error = f"Error: {message}"
    if suggestion:
        error += f"\nTip: {suggestion}"
    return error


def emit_json(result: Dict[str, Any], output: Optional[str], quiet: bool) -> None:
    """Write a result as JSON to a file or stdout."""
    output_text = json.dumps(result, indent=2)
    if output:
        output_path = Path(output)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        with open(output_path, 'w', encoding='utf-8') as f:
            f.write(output_text)
        if not quiet:
            click.echo(f"Output saved to: {output_path}", err=True)
    else:
        click.echo(output_text)
