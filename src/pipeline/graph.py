from typing import Optional

from langgraph.graph import StateGraph, END

from intune.graph import GraphClient
from settings.loader import Settings
from .state import PipelineState, RunSummary
from .nodes.authenticate import authenticate_node
from .nodes.fetch_catalog import fetch_catalog_node, fetch_devices_node
from .nodes.reconcile import reconcile_devices_node
from .nodes.summarize import summarize_node


def build_graph(client: GraphClient):
    g = StateGraph(PipelineState)
    g.add_node("authenticate", lambda state: authenticate_node(state, client))
    g.add_node("fetch_catalog", lambda state: fetch_catalog_node(state, client))
    g.add_node("fetch_devices", lambda state: fetch_devices_node(state, client))
    g.add_node("reconcile_devices", lambda state: reconcile_devices_node(state, client))
    g.add_node("summarize", summarize_node)

    g.set_entry_point("authenticate")
    g.add_edge("authenticate", "fetch_catalog")
    g.add_edge("fetch_catalog", "fetch_devices")
    g.add_edge("fetch_devices", "reconcile_devices")
    g.add_edge("reconcile_devices", "summarize")
    g.add_edge("summarize", END)

    return g.compile()


def run_reconciliation(
    client: GraphClient,
    settings: Optional[Settings] = None,
    simulate: bool = False,
) -> RunSummary:
    """Run one reconciliation pass and return its summary.

    Authentication and reference-data failures propagate as
    CategorySyncError subclasses; no summary is produced in that case.
    """
    settings = settings or Settings()
    state = PipelineState(
        simulate=simulate,
        operating_system=settings.operating_system,
        no_category_labels=list(settings.no_category_labels),
    )
    app = build_graph(client)
    result = app.invoke(state)

    # LangGraph may return a dict; coerce to PipelineState for attribute access
    final_state = PipelineState(**result) if isinstance(result, dict) else result
    return final_state.summary
