"""
Markdown templates for new RFC documents.

The domain model treats content as an opaque string; these helpers only
produce and edit that string for the agent tools.
"""

import re
from dataclasses import dataclass
from typing import Optional, Sequence

RFC_SECTIONS: dict[str, str] = {
    "problem": """## Problem Statement

<!-- Describe the problem this RFC solves -->
- What is the current situation?
- What are the pain points?
- What are the user needs that are not being met?

""",
    "solution": """## Proposed Solution

<!-- High-level description of the proposed solution -->
- What is the core approach?
- How does this solve the problem?
- What are the key components?

""",
    "alternatives": """## Alternatives Considered

<!-- Alternative approaches that were considered and why they were rejected -->
1. **Alternative 1**: Description
   - Pros:
   - Cons:
   - Why rejected:

""",
    "implementation": """## Implementation Details

### Architecture

### API Changes

### Database Changes

### Migration Strategy

""",
    "rollout": """## Rollout Plan

### Phase 1: Foundation

### Phase 2: Rollout

### Phase 3: Full Deployment

### Rollback Plan

""",
    "risks": """## Risks and Mitigations

### Technical Risks
- **Risk**: Description
  - **Likelihood**: High/Medium/Low
  - **Impact**: High/Medium/Low
  - **Mitigation**: Strategy

""",
}

_FOOTER = """## Questions and Discussion

<!-- Questions for reviewers and space for discussion -->

---

## Review Status

- [ ] Frontend Review
- [ ] Backend Review
- [ ] Security Review
- [ ] Database Review
- [ ] DevOps Review
"""

_HEADING = re.compile(r"^#+\s+")


@dataclass
class RFCMetadata:
    title: str
    description: str
    author: str
    status: str
    created: str


def generate_rfc_template(metadata: RFCMetadata, sections: Sequence[str] = ()) -> str:
    """Render front matter, title, description, the chosen sections and a footer."""
    unknown = [s for s in sections if s not in RFC_SECTIONS]
    if unknown:
        raise ValueError(
            f"Unknown RFC section(s): {', '.join(unknown)}; "
            f"expected any of {', '.join(RFC_SECTIONS)}"
        )

    header = (
        "---\n"
        f"title: {metadata.title}\n"
        f"description: {metadata.description}\n"
        f"author: {metadata.author}\n"
        f"status: {metadata.status}\n"
        f"created: {metadata.created}\n"
        "---\n\n"
        f"# {metadata.title}\n\n"
        f"{metadata.description}\n\n"
    )
    body = "".join(RFC_SECTIONS[s] for s in sections)
    return header + body + _FOOTER


def find_section(content: str, section_title: str) -> Optional[int]:
    """Line index of the first heading starting with section_title (case-insensitive)."""
    pattern = re.compile(rf"^#+\s+{re.escape(section_title)}", re.IGNORECASE)
    for index, line in enumerate(content.split("\n")):
        if pattern.match(line):
            return index
    return None


def append_section(content: str, section_title: str, section_content: str) -> str:
    return f"{content}\n\n## {section_title}\n\n{section_content}\n"


def insert_section_after(
    content: str, after_section: str, section_title: str, section_content: str
) -> str:
    """
    Insert a new ``##`` section after the section titled after_section, i.e.
    before the next heading. Appends at the end when after_section is absent.
    """
    after_index = find_section(content, after_section)
    if after_index is None:
        return append_section(content, section_title, section_content)

    lines = content.split("\n")
    insert_at = len(lines)
    for index in range(after_index + 1, len(lines)):
        if _HEADING.match(lines[index]):
            insert_at = index
            break

    lines[insert_at:insert_at] = [f"## {section_title}", "", section_content, ""]
    return "\n".join(lines)
