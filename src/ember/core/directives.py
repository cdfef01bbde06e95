"""Directive expansion for request text.

Two line directives are recognized:

``#import <path>``
    Replaced by the contents of the file, like ``#include``.
``#diff <path>``
    Same as ``#import``, and also marks the file as a diff target: the
    response is expected to be compared against it afterwards.

A directive must be the only thing on its line (leading whitespace is allowed,
anything after the path token is ignored). Imported content is spliced in
verbatim and is not scanned for further directives.
"""

import logging
import re
from dataclasses import dataclass, field
from pathlib import Path

from ember.config.paths import normalize_path

logger = logging.getLogger(__name__)

IMPORT_PATTERN = re.compile(r"^\s*#import\s+[~\w\\./]+")
DIFF_PATTERN = re.compile(r"^\s*#diff\s+[~\w\\./]+")


class DirectiveError(Exception):
    """A file named by a directive could not be read."""

    def __init__(self, path: str):
        self.path = path
        super().__init__(f"#import file {path} was not found")


@dataclass
class DirectiveResult:
    """Outcome of expanding a request."""

    success: bool
    text: str
    diff_targets: list[str] = field(default_factory=list)


def _read_lines(path: str) -> list[str]:
    try:
        contents = Path(path).read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        logger.debug("directive_read_failed", extra={"path": path, "error": str(e)})
        raise DirectiveError(path) from e
    return contents.split("\n")


def expand(content: str) -> DirectiveResult:
    """Expand ``#import`` and ``#diff`` directives in ``content``.

    The first unreadable file aborts the whole pass: the result is unsuccessful,
    its text is the error message, and ``diff_targets`` holds whatever was
    collected before the failure.
    """
    output: list[str] = []
    diff_targets: list[str] = []

    for line in content.split("\n"):
        is_diff = DIFF_PATTERN.match(line) is not None
        if not is_diff and IMPORT_PATTERN.match(line) is None:
            output.append(line)
            continue

        path = normalize_path(line.split()[1])
        if is_diff:
            diff_targets.append(path)

        try:
            output.extend(_read_lines(path))
        except DirectiveError as e:
            return DirectiveResult(success=False, text=str(e), diff_targets=diff_targets)

    return DirectiveResult(success=True, text="\n".join(output), diff_targets=diff_targets)
