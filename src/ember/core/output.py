"""Saving responses to disk and comparing them with an external diff tool."""

import logging
import re
import shlex
import subprocess
from datetime import datetime
from pathlib import Path

from ember.config.paths import normalize_path

logger = logging.getLogger(__name__)

CODE_BLOCK_PATTERN = re.compile(r"```[^\n]*\n(.*?)```", re.DOTALL)


def extract_code(text: str) -> str:
    """Return the fenced code blocks in ``text``, or ``text`` if there are none."""
    blocks = CODE_BLOCK_PATTERN.findall(text)
    if not blocks:
        return text
    return "\n".join(block.rstrip("\n") for block in blocks) + "\n"


def diff_output_path(diff_target: str) -> Path:
    """Sibling path for a response compared against ``diff_target``.

    ``src/app.py`` becomes ``src/app.ember.py`` so the suffix (and any syntax
    highlighting in the diff tool) is kept.
    """
    target = Path(normalize_path(diff_target))
    return target.with_name(f"{target.stem}.ember{target.suffix}")


class FileSaver:
    """Writes responses next to their diff target or into a save directory."""

    def __init__(self, save_dir: Path) -> None:
        self.save_dir = save_dir

    def save(self, text: str, diff_target: str | None, save: bool) -> Path | None:
        """Save a response.

        With a diff target, only the response's code is written beside the
        target. Otherwise the full response is written to a timestamped file when
        ``save`` is set.

        Returns:
            The written path, or None when nothing was saved.
        """
        if diff_target:
            path = diff_output_path(diff_target)
            content = extract_code(text)
        elif save:
            stamp = datetime.now().strftime("%Y%m%d-%H%M%S")
            path = self.save_dir / f"ember-{stamp}.md"
            content = text if text.endswith("\n") else text + "\n"
        else:
            return None

        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
        logger.info("response_saved", extra={"path": str(path)})
        return path


class DiffLauncher:
    """Runs an interactive diff program on the terminal."""

    def __init__(self, command: str) -> None:
        self.command = command

    def launch(self, new_file: Path, diff_file: str) -> bool:
        """Compare ``new_file`` with ``diff_file``, waiting for the tool to exit.

        Returns:
            False if the diff program could not be started.
        """
        args = [*shlex.split(self.command), str(new_file), normalize_path(diff_file)]
        try:
            subprocess.run(args, check=False)
        except FileNotFoundError:
            logger.error("diff_command_not_found", extra={"command": self.command})
            return False
        return True
