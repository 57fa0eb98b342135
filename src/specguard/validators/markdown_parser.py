"""Markdown parsing for spec, task and status documents.

Extracts sections, list items and task checklists from the conventional
spec directory layout (spec.md, tasks.md, status.md and
sub-specs/technical-spec.md). Uses only regex (no external markdown libraries).
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from pathlib import Path

from specguard.validators.path_filter import read_text


@dataclass
class MarkdownSection:
    """A parsed markdown section.

    Attributes:
        heading: The heading text (without the # prefix).
        level: The heading level (1 for #, 2 for ##, etc.).
        content: The content under this heading until the next same/higher level heading.
    """

    heading: str
    level: int
    content: str


@dataclass
class ChecklistItem:
    """A task checklist entry such as "- [x] 1.2 Write tests".

    Attributes:
        number: Task number ("1.2"), or "" when unnumbered.
        text: Task description.
        done: True when the box is checked.
    """

    number: str
    text: str
    done: bool


class MarkdownParser:
    """Parse markdown documents used by spec directories.

    All methods are static and stateless.
    """

    _HEADING_PATTERN = re.compile(r"^(#{1,6})\s+(.+?)\s*#*\s*$", re.MULTILINE)
    _BULLET_PATTERN = re.compile(r"^\s*[-*+]\s+(?!\[[ xX]\])(.+?)\s*$", re.MULTILINE)
    _NUMBERED_PATTERN = re.compile(r"^\s*\d+\.\s+(.+?)\s*$", re.MULTILINE)
    _CHECKLIST_PATTERN = re.compile(
        r"^\s*[-*]\s+\[(?P<mark>[ xX])\]\s+(?:(?P<number>\d+(?:\.\d+)*)\.?\s+)?(?P<text>.+?)\s*$",
        re.MULTILINE,
    )

    @staticmethod
    def extract_section(content: str, heading: str, level: int = 2) -> str | None:
        """Extract content under the first heading that starts with the given text.

        Matching is case-insensitive and by prefix, so "Expected Deliverable"
        finds "## Expected Deliverables". Content runs until the next heading
        of the same or higher level, or end of file.

        Args:
            content: Markdown content to search.
            heading: Heading text to find (without # prefix).
            level: The heading level to search for (default 2 for ##).

        Returns:
            Content under the heading, or None if heading not found.
        """
        hashes = "#" * level
        pattern = re.compile(
            rf"^{hashes}[ \t]+{re.escape(heading)}[^\n]*$",
            re.MULTILINE | re.IGNORECASE,
        )
        match = pattern.search(content)
        if match is None:
            return None

        next_heading = re.compile(rf"^#{{1,{level}}}[ \t]+", re.MULTILINE)
        next_match = next_heading.search(content, match.end())
        end_pos = next_match.start() if next_match else len(content)

        return content[match.end():end_pos].strip()

    @staticmethod
    def extract_all_sections(content: str) -> list[MarkdownSection]:
        """Extract all sections with their headings and content.

        Args:
            content: Markdown content to parse.

        Returns:
            List of MarkdownSection objects in document order.
        """
        sections: list[MarkdownSection] = []
        headings = list(MarkdownParser._HEADING_PATTERN.finditer(content))

        for i, match in enumerate(headings):
            level = len(match.group(1))
            end_pos = len(content)
            for following in headings[i + 1:]:
                if len(following.group(1)) <= level:
                    end_pos = following.start()
                    break

            sections.append(
                MarkdownSection(
                    heading=match.group(2).strip(),
                    level=level,
                    content=content[match.end():end_pos].strip(),
                )
            )

        return sections

    @staticmethod
    def extract_subsections(content: str, level: int = 3) -> list[MarkdownSection]:
        """Sections of exactly the given level inside a block of content."""
        return [s for s in MarkdownParser.extract_all_sections(content) if s.level == level]

    @staticmethod
    def has_section(content: str, heading: str, level: int = 2) -> bool:
        return MarkdownParser.extract_section(content, heading, level) is not None

    @staticmethod
    def list_items(content: str) -> list[str]:
        """Bullet items ("- ", "* ", "+ "), excluding checklist entries."""
        return [m.group(1) for m in MarkdownParser._BULLET_PATTERN.finditer(content)]

    @staticmethod
    def numbered_items(content: str) -> list[str]:
        """Numbered items ("1. ...")."""
        return [m.group(1) for m in MarkdownParser._NUMBERED_PATTERN.finditer(content)]

    @staticmethod
    def checklist_items(content: str) -> list[ChecklistItem]:
        """Task checklist entries ("- [ ] 1.1 ...", "- [x] ...")."""
        return [
            ChecklistItem(
                number=m.group("number") or "",
                text=m.group("text"),
                done=m.group("mark").lower() == "x",
            )
            for m in MarkdownParser._CHECKLIST_PATTERN.finditer(content)
        ]


@dataclass
class UserStory:
    """A user story from the "User Stories" section.

    Attributes:
        title: Story heading.
        content: Full story text.
        criteria: Acceptance criteria bullet items.
    """

    title: str
    content: str
    criteria: list[str] = field(default_factory=list)


@dataclass
class SpecDocuments:
    """Everything parsed from one spec directory.

    Missing files or sections produce empty values, never errors.

    Attributes:
        path: The spec directory.
        overview: Overview section text.
        user_stories: Stories with their acceptance criteria.
        requirements: Spec Scope items.
        out_of_scope: Out of Scope items.
        deliverables: Expected Deliverable items.
        technical_requirements: Bullets from technical-spec.md.
        tasks: tasks.md checklist entries.
        tasks_text: Raw tasks.md content.
        status_text: Raw status.md content.
    """

    path: Path
    overview: str = ""
    user_stories: list[UserStory] = field(default_factory=list)
    requirements: list[str] = field(default_factory=list)
    out_of_scope: list[str] = field(default_factory=list)
    deliverables: list[str] = field(default_factory=list)
    technical_requirements: list[str] = field(default_factory=list)
    tasks: list[ChecklistItem] = field(default_factory=list)
    tasks_text: str = ""
    status_text: str = ""


def _items(section: str | None) -> list[str]:
    """Numbered items of a section, falling back to bullets."""
    if not section:
        return []
    return MarkdownParser.numbered_items(section) or MarkdownParser.list_items(section)


def _user_stories(section: str | None) -> list[UserStory]:
    if not section:
        return []
    return [
        UserStory(
            title=story.heading,
            content=story.content,
            criteria=MarkdownParser.list_items(story.content),
        )
        for story in MarkdownParser.extract_subsections(section, level=3)
    ]


def load_spec_documents(spec_dir: Path) -> SpecDocuments:
    """Parse the documents of a spec directory.

    Args:
        spec_dir: Directory holding spec.md and friends.

    Returns:
        SpecDocuments with every section that could be found.
    """
    spec_text = read_text(spec_dir / "spec.md")
    technical_text = read_text(spec_dir / "sub-specs" / "technical-spec.md")
    tasks_text = read_text(spec_dir / "tasks.md")

    technical_section = MarkdownParser.extract_section(technical_text, "Technical Requirements")

    return SpecDocuments(
        path=spec_dir,
        overview=MarkdownParser.extract_section(spec_text, "Overview") or "",
        user_stories=_user_stories(MarkdownParser.extract_section(spec_text, "User Stories")),
        requirements=_items(MarkdownParser.extract_section(spec_text, "Spec Scope")),
        out_of_scope=MarkdownParser.list_items(
            MarkdownParser.extract_section(spec_text, "Out of Scope") or ""
        ),
        deliverables=_items(MarkdownParser.extract_section(spec_text, "Expected Deliverable")),
        technical_requirements=MarkdownParser.list_items(technical_section or ""),
        tasks=MarkdownParser.checklist_items(tasks_text),
        tasks_text=tasks_text,
        status_text=read_text(spec_dir / "status.md"),
    )


DATED_SPEC_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}-")


def list_spec_directories(specs_root: Path) -> list[Path]:
    """Dated spec directories (YYYY-MM-DD-name) under specs_root, oldest first."""
    if not specs_root.is_dir():
        return []
    return sorted(
        child
        for child in specs_root.iterdir()
        if child.is_dir() and DATED_SPEC_PATTERN.match(child.name)
    )
