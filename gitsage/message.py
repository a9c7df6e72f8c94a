"""Conventional Commits parsing, formatting and validation."""

from __future__ import annotations

import re
from dataclasses import dataclass, field

VALID_COMMIT_TYPES = (
    "feat",
    "fix",
    "docs",
    "style",
    "refactor",
    "test",
    "chore",
    "perf",
    "ci",
    "build",
    "revert",
)

MAX_SUBJECT_LENGTH = 100

_CONVENTIONAL = re.compile(
    r"^(feat|fix|docs|style|refactor|test|chore|perf|ci|build|revert)"
    r"(\([^)]+\))?:[ \t\n\f\r]*(.+)$"
)

_FOOTER_PREFIXES = tuple(
    prefix.upper()
    for prefix in (
        "BREAKING CHANGE:",
        "BREAKING-CHANGE:",
        "Refs:",
        "Closes:",
        "Fixes:",
        "Resolves:",
        "See:",
        "Co-authored-by:",
        "Signed-off-by:",
        "Reviewed-by:",
        "Acked-by:",
    )
)


def is_valid_commit_type(commit_type: str) -> bool:
    """Whether commit_type is a Conventional Commits type."""
    return commit_type in VALID_COMMIT_TYPES


def _is_footer_line(line: str) -> bool:
    return line.upper().startswith(_FOOTER_PREFIXES) or line.startswith("#")


@dataclass(frozen=True)
class ValidationIssue:
    """A single validation problem tied to a message field."""

    field: str
    message: str

    def __str__(self) -> str:
        return f"{self.field}: {self.message}"


@dataclass
class ValidationResult:
    """Errors make a message invalid; warnings do not."""

    is_valid: bool = True
    errors: list[ValidationIssue] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)


class CommitValidationError(ValueError):
    """Raised when a commit message does not follow Conventional Commits."""

    def __init__(self, issues: list[ValidationIssue]) -> None:
        super().__init__("; ".join(str(issue) for issue in issues))
        self.issues = list(issues)


@dataclass
class CommitMessage:
    """A commit message split into its Conventional Commits parts."""

    type: str = ""
    scope: str = ""
    subject: str = ""
    body: str = ""
    footer: str = ""

    @classmethod
    def parse(cls, raw_text: str) -> CommitMessage:
        """Parse raw text; anything not in the expected form lands in the subject."""
        message = cls()
        raw_text = raw_text.strip()
        if not raw_text:
            return message
        lines = raw_text.split("\n")
        message._parse_subject(lines[0].strip())
        if len(lines) > 1:
            message._parse_body_and_footer(lines[1:])
        return message

    def _parse_subject(self, subject: str) -> None:
        match = _CONVENTIONAL.match(subject)
        if match:
            self.type = match.group(1)
            if match.group(2):
                self.scope = match.group(2).strip("()")
            self.subject = match.group(3).strip()
            return
        idx = subject.find(":")
        if idx > 0:
            potential_type = subject[:idx].strip()
            if is_valid_commit_type(potential_type):
                self.type = potential_type
                self.subject = subject[idx + 1 :].strip()
                return
        self.subject = subject

    def _parse_body_and_footer(self, lines: list[str]) -> None:
        body_lines: list[str] = []
        footer_lines: list[str] = []
        in_footer = False
        found_blank = False

        for line in lines:
            trimmed = line.strip()
            if not found_blank and trimmed == "":
                found_blank = True
                continue
            if _is_footer_line(trimmed):
                in_footer = True
            if in_footer:
                footer_lines.append(line)
            elif found_blank:
                body_lines.append(line)

        self.body = "\n".join(body_lines).strip()
        self.footer = "\n".join(footer_lines).strip()

    def format(self) -> str:
        """The full message: subject, then body and footer each after a blank line."""
        parts = [self.format_subject()]
        if self.body:
            parts += ["", self.body]
        if self.footer:
            parts += ["", self.footer]
        return "\n".join(parts)

    def format_subject(self) -> str:
        """The subject line, ``type(scope): subject``."""
        if not self.type:
            return self.subject
        if self.scope:
            return f"{self.type}({self.scope}): {self.subject}"
        return f"{self.type}: {self.subject}"

    def validate(self) -> None:
        """Raise CommitValidationError if the message is invalid."""
        result = self.validate_with_warnings()
        if not result.is_valid:
            raise CommitValidationError(result.errors)

    def validate_with_warnings(self) -> ValidationResult:
        """Check the message, reporting errors and non-fatal warnings."""
        result = ValidationResult()
        if not self.type:
            result.errors.append(ValidationIssue("type", "missing commit type"))
        elif not is_valid_commit_type(self.type):
            result.errors.append(
                ValidationIssue(
                    "type",
                    f"invalid commit type: {self.type} "
                    f"(valid types: {', '.join(VALID_COMMIT_TYPES)})",
                )
            )
        if not self.subject:
            result.errors.append(ValidationIssue("subject", "missing commit subject"))
        result.is_valid = not result.errors

        length = self._subject_length()
        if length > MAX_SUBJECT_LENGTH:
            result.warnings.append(
                f"subject line exceeds {MAX_SUBJECT_LENGTH} characters ({length} chars)"
            )
        return result

    def _subject_length(self) -> int:
        return len(self.format_subject().encode("utf-8"))

    def subject_exceeds_length(self) -> bool:
        return self._subject_length() > MAX_SUBJECT_LENGTH

    def has_body(self) -> bool:
        return bool(self.body)

    def has_footer(self) -> bool:
        return bool(self.footer)

    def is_multi_line(self) -> bool:
        return self.has_body() or self.has_footer()