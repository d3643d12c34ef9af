"""LangGraph workflow assembly for the organize pipeline."""

from langgraph.graph import END, StateGraph

from tab_organizer.graph.nodes import call_ai, create_groups, fetch_tabs, ungroup
from tab_organizer.graph.state import OrganizeState


def build_graph():
    def _continue_or_stop(state: OrganizeState) -> str:
        return "stop" if state.get("cancelled", False) else "continue"

    graph = StateGraph(OrganizeState)

    graph.add_node("fetch_tabs", fetch_tabs.run)
    graph.add_node("ungroup", ungroup.run)
    graph.add_node("call_ai", call_ai.run)
    graph.add_node("create_groups", create_groups.run)

    graph.set_entry_point("fetch_tabs")
    graph.add_conditional_edges("fetch_tabs", _continue_or_stop, {"continue": "ungroup", "stop": END})
    graph.add_conditional_edges("ungroup", _continue_or_stop, {"continue": "call_ai", "stop": END})
    graph.add_conditional_edges(
        "call_ai", _continue_or_stop, {"continue": "create_groups", "stop": END}
    )
    graph.add_edge("create_groups", END)

    return graph.compile()
