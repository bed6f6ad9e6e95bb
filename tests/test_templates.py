"""
Tests for RFC markdown templates.
"""

import pytest

from openrfc.templates import (
    RFC_SECTIONS,
    RFCMetadata,
    append_section,
    find_section,
    generate_rfc_template,
    insert_section_after,
)

META = RFCMetadata(
    title="Auth RFC",
    description="Move to token auth",
    author="lead1",
    status="draft",
    created="2024-01-01T00:00:00",
)


class TestGenerateTemplate:
    def test_front_matter_and_title(self):
        content = generate_rfc_template(META)
        assert content.startswith("---\ntitle: Auth RFC\n")
        assert "# Auth RFC\n\nMove to token auth" in content
        assert "## Review Status" in content

    def test_sections_in_requested_order(self):
        content = generate_rfc_template(META, ["risks", "problem"])
        assert content.index("## Risks and Mitigations") < content.index("## Problem Statement")
        assert "## Proposed Solution" not in content

    def test_unknown_section(self):
        with pytest.raises(ValueError) as exc:
            generate_rfc_template(META, ["budget"])
        assert "budget" in str(exc.value)

    def test_known_sections(self):
        assert set(RFC_SECTIONS) == {
            "problem",
            "solution",
            "alternatives",
            "implementation",
            "rollout",
            "risks",
        }


class TestSectionEditing:
    CONTENT = "# Title\n\n## Problem Statement\n\nBroken.\n\n## Proposed Solution\n\nFix it.\n"

    def test_find_section_case_insensitive(self):
        assert find_section(self.CONTENT, "problem statement") == 2
        assert find_section(self.CONTENT, "Timeline") is None

    def test_insert_before_next_heading(self):
        updated = insert_section_after(self.CONTENT, "Problem Statement", "Impact", "Large.")
        assert updated.index("## Impact") < updated.index("## Proposed Solution")
        assert updated.index("## Problem Statement") < updated.index("## Impact")

    def test_insert_after_last_section(self):
        updated = insert_section_after(self.CONTENT, "Proposed Solution", "Impact", "Large.")
        assert updated.rstrip().endswith("Large.")

    def test_missing_anchor_appends(self):
        updated = insert_section_after(self.CONTENT, "Timeline", "Impact", "Large.")
        assert updated == append_section(self.CONTENT, "Impact", "Large.")

    def test_append(self):
        assert append_section("body", "Notes", "n").endswith("## Notes\n\nn\n")
