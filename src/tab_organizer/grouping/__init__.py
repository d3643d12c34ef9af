"""AI grouping client."""

from tab_organizer.grouping.client import GroupingClient, build_request_body
from tab_organizer.grouping.parser import extract_message_content, parse_grouping_content
from tab_organizer.grouping.prompt import SYSTEM_PROMPT, TabIndexMapping, build_user_prompt
from tab_organizer.grouping.transport import HttpResponse, urllib_transport

__all__ = [
    "GroupingClient",
    "HttpResponse",
    "SYSTEM_PROMPT",
    "TabIndexMapping",
    "build_request_body",
    "build_user_prompt",
    "extract_message_content",
    "parse_grouping_content",
    "urllib_transport",
]
