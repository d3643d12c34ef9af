"""Parse and validate the model's grouping answer."""

from __future__ import annotations

import json
import re
from typing import Any

from tab_organizer.errors import EmptyResult, MalformedResponse
from tab_organizer.grouping.prompt import TabIndexMapping
from tab_organizer.models import DEFAULT_COLOR, DEFAULT_GROUP_NAME, TAB_COLORS, GroupSpec

_CODE_BLOCK_RE = re.compile(r"```(?:json)?\s*([\s\S]*?)```")


def extract_message_content(response_json: Any) -> str:
    """Return ``choices[0].message.content`` as text."""
    if not isinstance(response_json, dict):
        raise MalformedResponse("No content in API response", detail="response is not an object")
    choices = response_json.get("choices")
    if not isinstance(choices, list) or not choices or not isinstance(choices[0], dict):
        raise MalformedResponse("No content in API response", detail="response missing choices")

    message = choices[0].get("message")
    content = message.get("content") if isinstance(message, dict) else None
    if isinstance(content, list):
        content = "".join(
            item["text"]
            for item in content
            if isinstance(item, dict) and isinstance(item.get("text"), str)
        )
    if not isinstance(content, str) or not content.strip():
        raise MalformedResponse("No content in API response", detail="message content is empty")
    return content


def parse_grouping_content(text: str, mapping: TabIndexMapping) -> list[GroupSpec]:
    """Turn the model's text into validated groups of real tab ids.

    Unknown colors become grey, missing names become "Unnamed", and
    ordinals that are out of range, not integers, or already claimed by an
    earlier group are dropped. A group may come back with no tabs; the
    applier skips those.
    """
    payload = _load_json(_strip_code_fence(text))
    if not isinstance(payload, dict):
        raise MalformedResponse(
            "Invalid response: expected a JSON object",
            detail=f"top-level JSON type is {type(payload).__name__}",
        )

    raw_groups = payload.get("groups")
    if not isinstance(raw_groups, list):
        raise MalformedResponse("Invalid response: missing groups array")
    if not raw_groups:
        raise EmptyResult()

    claimed: set[int] = set()
    groups: list[GroupSpec] = []
    for position, raw in enumerate(raw_groups):
        if not isinstance(raw, dict):
            raise MalformedResponse(
                "Invalid response: groups must be objects",
                detail=f"groups[{position}] is {type(raw).__name__}",
            )
        tab_ids: list[int] = []
        for ordinal in _as_list(raw.get("tabIds")):
            if not _is_ordinal(ordinal):
                continue
            tab_id = mapping.tab_id_for(ordinal)
            if tab_id is None or tab_id in claimed:
                continue
            claimed.add(tab_id)
            tab_ids.append(tab_id)
        groups.append(
            GroupSpec(
                name=_group_name(raw.get("name")),
                color=_group_color(raw.get("color")),
                tab_ids=tab_ids,
            )
        )
    return groups


def _strip_code_fence(text: str) -> str:
    match = _CODE_BLOCK_RE.search(text)
    if match:
        return match.group(1).strip()
    return text.strip()


def _load_json(text: str) -> Any:
    try:
        return json.loads(text)
    except json.JSONDecodeError as exc:
        raise MalformedResponse(detail=f"JSON decode failed: {exc}") from exc


def _as_list(value: Any) -> list[Any]:
    if isinstance(value, list):
        return value
    return []


def _is_ordinal(value: Any) -> bool:
    # bool is an int subclass; true/false are not ordinals
    return isinstance(value, int) and not isinstance(value, bool)


def _group_name(value: Any) -> str:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return DEFAULT_GROUP_NAME


def _group_color(value: Any) -> str:
    if isinstance(value, str) and value in TAB_COLORS:
        return value
    return DEFAULT_COLOR
