"""Tests for the format-preserving structural editor."""

from __future__ import annotations

from pathlib import Path

import pytest

from cpmfix.editor import (
    PACKAGE_VERSION,
    DocumentParseError,
    ProjectDocument,
    edit_file,
    read_if_exists,
)

PROJECT = """<Project Sdk="Microsoft.NET.Sdk">
  <!-- build settings -->
  <PropertyGroup>
    <TargetFramework>net8.0</TargetFramework>
  </PropertyGroup>
  <ItemGroup>
    <PackageReference Include="Serilog" Version="2.12.0" />
    <PackageReference   Include="Moq"   Version='4.18.0'/>
    <PackageReference Include="Newtonsoft.Json">
      <Version>13.0.1</Version>
      <PrivateAssets>all</PrivateAssets>
    </PackageReference>
    <!-- <PackageReference Include="Serilog" Version="1.0.0" /> -->
  </ItemGroup>
</Project>
"""

MANIFEST = """<Project>
  <PropertyGroup>
    <ManagePackageVersionsCentrally>true</ManagePackageVersionsCentrally>
  </PropertyGroup>
  <ItemGroup>
    <PackageVersion Include="Serilog" Version="3.0.0" />
    <PackageVersion Update="Moq" Version="4.18.0" />
  </ItemGroup>
</Project>
"""


# -----------------------------------------------------------------------------
# Parsing and lookup
# -----------------------------------------------------------------------------


class TestParse:
    """Tests for ProjectDocument.parse and entry lookup."""

    def test_entries_are_found_in_order(self) -> None:
        """Test that entries are listed in document order, comments skipped."""
        doc = ProjectDocument.parse(PROJECT)
        assert [e.identity for e in doc.entries] == ["Serilog", "Moq", "Newtonsoft.Json"]

    def test_versions_from_attribute_and_element(self) -> None:
        """Test that both version forms are read."""
        doc = ProjectDocument.parse(PROJECT)
        versions = {e.identity: e.version for e in doc.entries}
        assert versions == {
            "Serilog": "2.12.0",
            "Moq": "4.18.0",
            "Newtonsoft.Json": "13.0.1",
        }

    def test_find_entries_is_case_insensitive(self) -> None:
        """Test that lookup ignores casing."""
        doc = ProjectDocument.parse(PROJECT)
        assert len(doc.find_entries("newtonsoft.JSON")) == 1
        assert doc.find_entries("Unknown") == []

    def test_find_package_versions_by_update(self) -> None:
        """Test that PackageVersion entries match on Include or Update."""
        doc = ProjectDocument.parse(MANIFEST)
        assert len(doc.find_entries("moq", PACKAGE_VERSION)) == 1
        assert doc.find_entries("moq") == []

    def test_malformed_document_raises(self) -> None:
        """Test that invalid XML raises DocumentParseError."""
        with pytest.raises(DocumentParseError):
            ProjectDocument.parse("<Project><ItemGroup></Project>")

    def test_unclosed_tag_in_comment_does_not_hide_next_entry(self) -> None:
        """Test that a commented-out opening tag leaves the following entry visible."""
        content = (
            "<Project>\n  <ItemGroup>\n"
            '    <!-- <PackageReference Include="Old"> -->\n'
            '    <PackageReference Include="Moq"><Version>4.18.0</Version></PackageReference>\n'
            "  </ItemGroup>\n</Project>\n"
        )
        doc = ProjectDocument.parse(content)
        assert [e.identity for e in doc.entries] == ["Moq"]
        (entry,) = doc.find_entries("Moq")
        assert entry.version == "4.18.0"

    def test_commented_version_element_is_ignored(self) -> None:
        """Test that only the live <Version> element of an entry is read and edited."""
        content = (
            "<Project><ItemGroup>\n"
            '<PackageReference Include="Moq">\n'
            "  <!-- <Version>1.0.0</Version> -->\n"
            "  <Version>4.18.0</Version>\n"
            "</PackageReference>\n"
            "</ItemGroup></Project>\n"
        )
        doc = ProjectDocument.parse(content)
        (entry,) = doc.find_entries("Moq")
        assert entry.version == "4.18.0"

        doc.set_version(entry, "4.20.0")

        result = doc.serialize()
        assert "<!-- <Version>1.0.0</Version> -->" in result
        assert "<Version>4.20.0</Version>" in result

    def test_unescapes_attribute_values(self) -> None:
        """Test that XML entities in attributes are decoded."""
        doc = ProjectDocument.parse(
            '<Project><ItemGroup><PackageReference Include="A&amp;B" Version="1.0" />'
            "</ItemGroup></Project>"
        )
        assert doc.entries[0].identity == "A&B"


# -----------------------------------------------------------------------------
# Edits
# -----------------------------------------------------------------------------


class TestEdits:
    """Tests for in-place edits and serialization."""

    def test_no_edits_round_trips_exactly(self) -> None:
        """Test that serialize() without edits returns the original text."""
        doc = ProjectDocument.parse(PROJECT)
        assert doc.serialize() == PROJECT

    def test_set_version_attribute(self) -> None:
        """Test updating a Version attribute keeps the rest of the file."""
        doc = ProjectDocument.parse(PROJECT)
        (entry,) = doc.find_entries("Serilog")
        assert doc.set_version(entry, "3.1.1") is True
        assert doc.serialize() == PROJECT.replace(
            'Include="Serilog" Version="2.12.0"', 'Include="Serilog" Version="3.1.1"'
        )

    def test_set_version_keeps_quote_style(self) -> None:
        """Test that single-quoted attributes stay single-quoted."""
        doc = ProjectDocument.parse(PROJECT)
        (entry,) = doc.find_entries("Moq")
        doc.set_version(entry, "4.20.0")
        assert "Version='4.20.0'/>" in doc.serialize()

    def test_set_version_element(self) -> None:
        """Test updating a nested <Version> element."""
        doc = ProjectDocument.parse(PROJECT)
        (entry,) = doc.find_entries("Newtonsoft.Json")
        assert doc.set_version(entry, "13.0.3") is True
        result = doc.serialize()
        assert "<Version>13.0.3</Version>" in result
        assert "<PrivateAssets>all</PrivateAssets>" in result

    def test_set_version_same_value_is_noop(self) -> None:
        """Test that setting the current version reports no change."""
        doc = ProjectDocument.parse(PROJECT)
        (entry,) = doc.find_entries("Serilog")
        assert doc.set_version(entry, "2.12.0") is False
        doc.set_version(entry, "3.0.0")
        assert doc.set_version(entry, "3.0.0") is False

    def test_set_identity_is_case_sensitive(self) -> None:
        """Test that identity rewrites compare case-sensitively."""
        doc = ProjectDocument.parse(PROJECT)
        (entry,) = doc.find_entries("moq")
        assert doc.set_identity(entry, "Moq") is False
        assert doc.set_identity(entry, "MOQ") is True
        assert 'Include="MOQ"' in doc.serialize()

    def test_remove_entries_drops_lines(self) -> None:
        """Test that removed entries take their whole line with them."""
        content = (
            "<Project>\n"
            "  <ItemGroup>\n"
            '    <PackageReference Include="Serilog" Version="3.0.0" />\n'
            '    <PackageReference Include="serilog" Version="3.0.0" />\n'
            '    <PackageReference Include="Serilog" Version="2.0.0" />\n'
            "  </ItemGroup>\n"
            "</Project>\n"
        )
        doc = ProjectDocument.parse(content)
        entries = doc.find_entries("Serilog")
        assert doc.remove_entries(entries[1:]) == 2
        assert doc.serialize() == (
            "<Project>\n"
            "  <ItemGroup>\n"
            '    <PackageReference Include="Serilog" Version="3.0.0" />\n'
            "  </ItemGroup>\n"
            "</Project>\n"
        )
        assert len(doc.find_entries("Serilog")) == 1

    def test_edits_inside_removed_entries_are_dropped(self) -> None:
        """Test that an edit to a removed entry does not leak into the output."""
        doc = ProjectDocument.parse(PROJECT)
        (entry,) = doc.find_entries("Moq")
        doc.set_version(entry, "9.9.9")
        doc.remove_entries([entry])
        result = doc.serialize()
        assert "Moq" not in result
        assert "9.9.9" not in result
        assert doc.set_version(entry, "1.0.0") is False

    def test_insert_package_version(self) -> None:
        """Test appending a new PackageVersion before the group's closing tag."""
        doc = ProjectDocument.parse(MANIFEST)
        assert doc.insert_package_version("Polly", "8.2.0") is True
        assert doc.serialize() == MANIFEST.replace(
            '    <PackageVersion Update="Moq" Version="4.18.0" />\n',
            '    <PackageVersion Update="Moq" Version="4.18.0" />\n'
            '    <PackageVersion Include="Polly" Version="8.2.0" />\n',
        )

    def test_insert_existing_package_is_refused(self) -> None:
        """Test that a package already in the manifest is not inserted twice."""
        doc = ProjectDocument.parse(MANIFEST)
        assert doc.insert_package_version("serilog", "1.0.0") is False

    def test_insert_into_empty_group(self) -> None:
        """Test inserting when no PackageVersion entries exist yet."""
        content = "<Project>\n  <ItemGroup>\n  </ItemGroup>\n</Project>\n"
        doc = ProjectDocument.parse(content)
        assert doc.insert_package_version("Polly", "8.2.0") is True
        assert doc.serialize() == (
            "<Project>\n  <ItemGroup>\n"
            '    <PackageVersion Include="Polly" Version="8.2.0" />\n'
            "  </ItemGroup>\n</Project>\n"
        )

    def test_insert_without_group(self) -> None:
        """Test that insertion fails when there is no ItemGroup."""
        doc = ProjectDocument.parse("<Project>\n</Project>\n")
        assert doc.insert_package_version("Polly", "8.2.0") is False

    def test_crlf_line_endings_are_preserved(self) -> None:
        """Test that Windows line endings survive edits."""
        content = MANIFEST.replace("\n", "\r\n")
        doc = ProjectDocument.parse(content)
        doc.insert_package_version("Polly", "8.2.0")
        result = doc.serialize()
        assert '<PackageVersion Include="Polly" Version="8.2.0" />\r\n' in result
        assert "\n" not in result.replace("\r\n", "")


# -----------------------------------------------------------------------------
# File sessions
# -----------------------------------------------------------------------------


class TestEditFile:
    """Tests for edit_file and read_if_exists."""

    def _bump_serilog(self, document: ProjectDocument) -> bool:
        changed = False
        for entry in document.find_entries("Serilog"):
            changed = document.set_version(entry, "3.1.1") or changed
        return changed

    def test_writes_changes(self, tmp_path: Path) -> None:
        """Test that a changed document is written back."""
        path = tmp_path / "App.csproj"
        path.write_text(PROJECT)

        outcome = edit_file(path, self._bump_serilog, dry_run=False)

        assert outcome.ok and outcome.changed
        assert path.read_text() == outcome.content
        assert 'Version="3.1.1"' in path.read_text()

    def test_dry_run_does_not_write(self, tmp_path: Path) -> None:
        """Test that dry run computes the same content without writing."""
        path = tmp_path / "App.csproj"
        path.write_text(PROJECT)

        preview = edit_file(path, self._bump_serilog, dry_run=True)
        assert preview.changed
        assert path.read_text() == PROJECT

        applied = edit_file(path, self._bump_serilog, dry_run=False)
        assert applied.content == preview.content

    def test_unchanged_document(self, tmp_path: Path) -> None:
        """Test that a transform reporting no change leaves the file alone."""
        path = tmp_path / "App.csproj"
        path.write_text(PROJECT)
        mtime = path.stat().st_mtime_ns

        outcome = edit_file(path, lambda document: False, dry_run=False)

        assert outcome.ok and not outcome.changed
        assert path.stat().st_mtime_ns == mtime

    def test_malformed_file_reports_error(self, tmp_path: Path) -> None:
        """Test that parse errors come back as an outcome, not an exception."""
        path = tmp_path / "Broken.csproj"
        path.write_text("<Project><ItemGroup>")

        outcome = edit_file(path, self._bump_serilog, dry_run=False)

        assert not outcome.ok
        assert not outcome.changed
        assert "Invalid XML" in (outcome.error or "")
        assert path.read_text() == "<Project><ItemGroup>"

    def test_missing_file_reports_error(self, tmp_path: Path) -> None:
        """Test that a missing file comes back as an outcome error."""
        outcome = edit_file(tmp_path / "Nope.csproj", self._bump_serilog, dry_run=False)
        assert not outcome.ok
        assert "not found" in (outcome.error or "")

    def test_bom_is_preserved(self, tmp_path: Path) -> None:
        """Test that a UTF-8 byte order mark survives the rewrite."""
        path = tmp_path / "App.csproj"
        path.write_bytes(b"\xef\xbb\xbf" + PROJECT.encode("utf-8"))

        edit_file(path, self._bump_serilog, dry_run=False)

        assert path.read_bytes().startswith(b"\xef\xbb\xbf")

    def test_read_if_exists(self, tmp_path: Path) -> None:
        """Test reading present and absent files."""
        path = tmp_path / "App.csproj"
        assert read_if_exists(path) is None
        path.write_bytes(PROJECT.replace("\n", "\r\n").encode("utf-8"))
        assert read_if_exists(path) == PROJECT.replace("\n", "\r\n")
