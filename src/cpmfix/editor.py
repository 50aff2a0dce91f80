"""Format-preserving editor for MSBuild package entries.

Only `PackageReference` and `PackageVersion` elements are understood. The
document is scanned once into immutable entry handles; edits are recorded as
replacements of exact character spans and applied on serialization, so every
byte outside an edited span is kept as-is (comments, whitespace, attribute
order, line endings).
"""

from __future__ import annotations

import codecs
import logging
import re
import xml.etree.ElementTree as ET
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from pathlib import Path
from xml.sax.saxutils import escape, unescape

logger = logging.getLogger(__name__)

PACKAGE_REFERENCE = "PackageReference"
PACKAGE_VERSION = "PackageVersion"

# Identity attributes per element, in lookup order
_IDENTITY_ATTRIBUTES: dict[str, tuple[str, ...]] = {
    PACKAGE_REFERENCE: ("Include",),
    PACKAGE_VERSION: ("Include", "Update"),
}

_SKIPPED_REGIONS = re.compile(r"<!--.*?-->|<!\[CDATA\[.*?\]\]>", re.DOTALL)
_ENTRY_PATTERN = re.compile(
    r"<(?P<tag>PackageReference|PackageVersion)"
    r"(?P<attrs>(?:\s+[\w:.-]+\s*=\s*(?:\"[^\"]*\"|'[^']*'))*)\s*"
    r"(?:/>|>(?P<body>.*?)</(?P=tag)\s*>)",
    re.DOTALL,
)
_ATTRIBUTE_PATTERN = re.compile(
    r"(?P<name>[\w:.-]+)\s*=\s*(?P<quote>[\"'])(?P<value>.*?)(?P=quote)",
    re.DOTALL,
)
_VERSION_ELEMENT_PATTERN = re.compile(r"<Version\s*>(?P<value>[^<]*)</Version\s*>")
_GROUP_CLOSE_PATTERN = re.compile(r"</ItemGroup\s*>")

_UNESCAPES = {"&quot;": '"', "&apos;": "'"}
_ATTRIBUTE_ESCAPES = {'"': {'"': "&quot;"}, "'": {"'": "&apos;"}}

Span = tuple[int, int]


class DocumentParseError(ValueError):
    """Raised when a project file is not well-formed XML."""


@dataclass(frozen=True)
class Node:
    """An editable text region: an attribute value or element text.

    Attributes:
        name: Attribute or element name.
        value: Unescaped value as found in the original document.
        span: Character span of the raw value in the original document.
        quote: Quote character for attributes, empty for element text.
    """

    name: str
    value: str
    span: Span
    quote: str = ""

    def escape(self, value: str) -> str:
        if self.quote:
            return escape(value, _ATTRIBUTE_ESCAPES[self.quote])
        return escape(value)


@dataclass(frozen=True)
class Entry:
    """Handle to one PackageReference or PackageVersion element.

    Handles are snapshots of the original document; the `index` is stable for
    the lifetime of the owning ProjectDocument.
    """

    index: int
    tag: str
    span: Span
    attributes: tuple[Node, ...]
    version_element: Node | None = None

    def attribute(self, name: str) -> Node | None:
        for node in self.attributes:
            if node.name == name:
                return node
        return None

    @property
    def identity_node(self) -> Node | None:
        for name in _IDENTITY_ATTRIBUTES[self.tag]:
            node = self.attribute(name)
            if node is not None:
                return node
        return None

    @property
    def identity(self) -> str | None:
        node = self.identity_node
        return node.value if node is not None else None

    @property
    def version(self) -> str | None:
        node = self.attribute("Version")
        if node is not None:
            return node.value
        if self.version_element is not None:
            return self.version_element.value
        return None


def check_well_formed(content: str) -> None:
    """Check that content is well-formed XML.

    Raises:
        DocumentParseError: If the content cannot be parsed.
    """
    try:
        ET.fromstring(content)
    except (ET.ParseError, ValueError) as e:
        raise DocumentParseError(f"Invalid XML: {e}") from e


def _mask(content: str, spans: Iterable[Span]) -> str:
    """Blank out spans with spaces, keeping every other offset in place."""
    chars = list(content)
    for start, end in spans:
        chars[start:end] = " " * (end - start)
    return "".join(chars)


def _scan_entries(masked: str) -> list[Entry]:
    entries: list[Entry] = []
    for match in _ENTRY_PATTERN.finditer(masked):
        attrs_offset = match.start("attrs")
        attributes = tuple(
            Node(
                name=m.group("name"),
                value=unescape(m.group("value"), _UNESCAPES),
                span=(attrs_offset + m.start("value"), attrs_offset + m.end("value")),
                quote=m.group("quote"),
            )
            for m in _ATTRIBUTE_PATTERN.finditer(match.group("attrs"))
        )

        version_element = None
        body = match.group("body")
        if body is not None:
            version_match = _VERSION_ELEMENT_PATTERN.search(body)
            if version_match:
                raw = version_match.group("value")
                stripped = raw.strip()
                start = (
                    match.start("body")
                    + version_match.start("value")
                    + (len(raw) - len(raw.lstrip()))
                )
                version_element = Node(
                    name="Version",
                    value=unescape(stripped),
                    span=(start, start + len(stripped)),
                )

        entries.append(
            Entry(
                index=len(entries),
                tag=match.group("tag"),
                span=match.span(),
                attributes=attributes,
                version_element=version_element,
            )
        )
    return entries


class ProjectDocument:
    """One parsed project or manifest file with pending edits.

    Example:
        >>> doc = ProjectDocument.parse(content)
        >>> for entry in doc.find_entries("Serilog"):
        ...     doc.set_version(entry, "3.1.1")
        >>> new_content = doc.serialize()
    """

    def __init__(self, content: str) -> None:
        self._content = content
        # Comments and CDATA never hold live entries
        skipped = [m.span() for m in _SKIPPED_REGIONS.finditer(content)]
        self._masked = _mask(content, skipped)
        self._entries = _scan_entries(self._masked)
        self._edits: dict[Span, tuple[str, str]] = {}
        self._removed: dict[int, Span] = {}
        self._insertions: list[tuple[int, str]] = []
        self._inserted: set[str] = set()

    @classmethod
    def parse(cls, content: str) -> ProjectDocument:
        """Parse content into a document.

        Raises:
            DocumentParseError: If the content is not well-formed XML.
        """
        check_well_formed(content)
        return cls(content)

    @property
    def entries(self) -> list[Entry]:
        return [e for e in self._entries if e.index not in self._removed]

    def find_entries(self, name: str, tag: str = PACKAGE_REFERENCE) -> list[Entry]:
        """Find live entries whose identity matches name case-insensitively.

        Args:
            name: Package identity to look for.
            tag: Element name (PackageReference or PackageVersion).

        Returns:
            Matching entries in document order.
        """
        key = name.casefold()
        return [
            entry
            for entry in self.entries
            if entry.tag == tag
            and entry.identity is not None
            and entry.identity.casefold() == key
        ]

    def value_of(self, node: Node) -> str:
        """Return the current value of a node, including pending edits."""
        pending = self._edits.get(node.span)
        return pending[0] if pending is not None else node.value

    def _replace(self, node: Node, value: str) -> bool:
        if self.value_of(node) == value:
            return False
        self._edits[node.span] = (value, node.escape(value))
        return True

    def set_version(self, entry: Entry, version: str) -> bool:
        """Set the version of an entry.

        Both the Version attribute and a nested <Version> element are updated
        when present.

        Returns:
            True if anything changed.
        """
        if entry.index in self._removed:
            return False
        changed = False
        attribute = entry.attribute("Version")
        if attribute is not None:
            changed = self._replace(attribute, version) or changed
        if entry.version_element is not None:
            changed = self._replace(entry.version_element, version) or changed
        return changed

    def set_identity(self, entry: Entry, name: str) -> bool:
        """Rewrite the identity attribute of an entry (case-sensitive compare).

        Returns:
            True if the identity changed.
        """
        node = entry.identity_node
        if node is None or entry.index in self._removed:
            return False
        return self._replace(node, name)

    def remove_entries(self, entries: Iterable[Entry]) -> int:
        """Remove entries, dropping their line when they stand alone on it.

        Returns:
            Number of entries removed.
        """
        removed = 0
        for entry in entries:
            if entry.index in self._removed:
                continue
            self._removed[entry.index] = self._removal_span(entry)
            removed += 1
        return removed

    def _removal_span(self, entry: Entry) -> Span:
        start, end = entry.span
        content = self._content
        line_start = content.rfind("\n", 0, start) + 1
        line_end = content.find("\n", end)
        if line_end == -1:
            line_end = len(content)
        if content[line_start:start].strip() or content[end:line_end].strip():
            return start, end
        return line_start, min(line_end + 1, len(content))

    def insert_package_version(self, name: str, version: str) -> bool:
        """Append a PackageVersion entry to the manifest's package group.

        The entry goes immediately before the closing </ItemGroup> of the group
        that holds the existing PackageVersion entries, or of the first group
        when there are none.

        Returns:
            True if the entry was inserted, False if no group exists or the
            package is already present.
        """
        if self.find_entries(name, PACKAGE_VERSION) or name.casefold() in self._inserted:
            return False

        versions = [e for e in self._entries if e.tag == PACKAGE_VERSION]
        search_from = versions[-1].span[1] if versions else 0
        close = self._find_group_close(search_from)
        if close is None:
            return False

        content = self._content
        newline = "\r\n" if "\r\n" in content else "\n"
        line_start = content.rfind("\n", 0, close) + 1
        prefix = content[line_start:close]
        quoted = _ATTRIBUTE_ESCAPES['"']
        element = (
            f'<{PACKAGE_VERSION} Include="{escape(name, quoted)}" '
            f'Version="{escape(version, quoted)}" />'
        )

        if prefix.strip():
            self._insertions.append((close, element))
        else:
            if versions:
                indent = self._indent_of(versions[-1])
            else:
                indent = prefix + "  "
            self._insertions.append((line_start, f"{indent}{element}{newline}"))

        self._inserted.add(name.casefold())
        return True

    def _find_group_close(self, start: int) -> int | None:
        match = _GROUP_CLOSE_PATTERN.search(self._masked, start)
        return match.start() if match else None

    def _indent_of(self, entry: Entry) -> str:
        line_start = self._content.rfind("\n", 0, entry.span[0]) + 1
        prefix = self._content[line_start : entry.span[0]]
        return prefix if not prefix.strip() else ""

    def serialize(self) -> str:
        """Render the document with all pending edits applied."""
        removed = list(self._removed.values())
        edits: list[tuple[int, int, str]] = [
            (start, end, raw)
            for (start, end), (_, raw) in self._edits.items()
            if not any(r_start <= start and end <= r_end for r_start, r_end in removed)
        ]
        edits.extend((start, end, "") for start, end in removed)
        edits.extend((pos, pos, text) for pos, text in self._insertions)

        parts: list[str] = []
        cursor = 0
        for start, end, raw in sorted(edits, key=lambda edit: (edit[0], edit[1])):
            parts.append(self._content[cursor:start])
            parts.append(raw)
            cursor = max(cursor, end)
        parts.append(self._content[cursor:])
        return "".join(parts)


# -----------------------------------------------------------------------------
# File-level edit sessions
# -----------------------------------------------------------------------------


@dataclass(frozen=True)
class EditOutcome:
    """Result of one edit session on one file.

    Attributes:
        path: File that was edited.
        changed: Whether the transformation modified the content.
        original: Content before the edit (None if unreadable).
        content: Content after the edit; written to disk unless dry run.
        error: Reason the file could not be edited, None on success.
    """

    path: Path
    changed: bool = False
    original: str | None = None
    content: str | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


def _decode(raw: bytes) -> tuple[bytes, str]:
    bom = codecs.BOM_UTF8 if raw.startswith(codecs.BOM_UTF8) else b""
    return bom, raw[len(bom) :].decode("utf-8")


def read_if_exists(path: Path) -> str | None:
    """Read a project file as text, or None when it does not exist.

    Line endings are preserved; a UTF-8 byte order mark is dropped.
    """
    if not path.is_file():
        return None
    return _decode(path.read_bytes())[1]


def edit_file(
    path: Path,
    transform: Callable[[ProjectDocument], bool],
    *,
    dry_run: bool,
) -> EditOutcome:
    """Run one parse-transform-serialize session on a file.

    I/O and parse failures never raise; they are reported through
    EditOutcome.error and the file is left untouched.

    Args:
        path: File to edit.
        transform: Applies edits to the document; returns True if it changed
            anything.
        dry_run: If True, compute the new content but do not write it.

    Returns:
        EditOutcome describing what happened.
    """
    try:
        bom, original = _decode(path.read_bytes())
    except FileNotFoundError:
        return EditOutcome(path, error=f"File not found: {path}")
    except (OSError, UnicodeDecodeError) as e:
        return EditOutcome(path, error=f"Could not read {path}: {e}")

    try:
        document = ProjectDocument.parse(original)
    except DocumentParseError as e:
        return EditOutcome(path, original=original, error=f"{path}: {e}")

    if not transform(document):
        return EditOutcome(path, original=original, content=original)

    content = document.serialize()
    if content == original:
        return EditOutcome(path, original=original, content=original)

    try:
        check_well_formed(content)
    except DocumentParseError as e:
        return EditOutcome(path, original=original, error=f"{path}: edit produced {e}")

    if dry_run:
        logger.debug("Dry run: would rewrite %s", path)
    else:
        try:
            path.write_bytes(bom + content.encode("utf-8"))
        except OSError as e:
            return EditOutcome(
                path, original=original, error=f"Could not write {path}: {e}"
            )
        logger.debug("Rewrote %s", path)

    return EditOutcome(path, changed=True, original=original, content=content)
