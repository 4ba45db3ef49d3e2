import logging

from pipeline.state import PipelineState, RunSummary
from settings.log import SIMULATION

LOGGER = logging.getLogger(__name__)


def summarize_node(state: PipelineState) -> PipelineState:
    summary = state.summary or RunSummary(simulation=state.simulate)
    LOGGER.info(
        "Summary: total=%d already_correct=%d updated=%d skipped=%d errors=%d",
        summary.total, summary.already_correct, summary.updated, summary.skipped, summary.errors,
    )
    for reason, count in sorted(summary.skipped_by_reason.items()):
        LOGGER.info("  skipped (%s): %d", reason, count)
    if state.simulate:
        LOGGER.log(SIMULATION, "Simulation mode: %d device(s) would have been updated", summary.updated)
    state.summary = summary
    return state
