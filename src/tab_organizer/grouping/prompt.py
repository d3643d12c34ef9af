"""Prompt construction and the ordinal <-> tab id mapping sent to the model."""

from __future__ import annotations

from collections.abc import Sequence

from tab_organizer.models import TAB_COLORS, TabRecord
from tab_organizer.sanitize import sanitize_url

SYSTEM_PROMPT = f"""You are a browser tab organizer. Create precise, task-focused groups.

Guidelines:
- Create SPECIFIC groups (e.g. "🛠️ React Debugging" not "💻 Development")
- Prefer more smaller groups over fewer large ones
- Split by distinct tasks/topics, even within same domain
- Max 6-8 tabs per group - split larger sets by subtask
- ALWAYS prefix names with relevant emoji
- Every tab must be in exactly one group

Return ONLY valid JSON:
{{"groups":[{{"name":"💻 Work","color":"blue","tabIds":[0,1,2]}}]}}

Colors: {", ".join(TAB_COLORS)}"""


class TabIndexMapping:
    """Dense ordinals (0..N-1, snapshot order) standing in for real tab ids.

    Short ordinals keep the prompt and the model's answer small. Lives for
    one task run only.
    """

    def __init__(self, tab_ids: Sequence[int]) -> None:
        self._index_to_id: dict[int, int] = {}
        self._id_to_index: dict[int, int] = {}
        for index, tab_id in enumerate(tab_ids):
            self._index_to_id[index] = tab_id
            self._id_to_index[tab_id] = index

    @classmethod
    def from_tabs(cls, tabs: Sequence[TabRecord]) -> TabIndexMapping:
        return cls([tab.id for tab in tabs])

    def tab_id_for(self, ordinal: int) -> int | None:
        return self._index_to_id.get(ordinal)

    def ordinal_for(self, tab_id: int) -> int | None:
        return self._id_to_index.get(tab_id)

    def __len__(self) -> int:
        return len(self._index_to_id)


def build_user_prompt(tabs: Sequence[TabRecord]) -> str:
    tab_list = "\n".join(
        f'{index}: "{tab.title}" | {sanitize_url(tab.url)}' for index, tab in enumerate(tabs)
    )
    return f"Organize these tabs:\n\n{tab_list}"
