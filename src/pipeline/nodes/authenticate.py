import logging

from intune.graph import GraphClient
from pipeline.state import PipelineState
from settings.log import SIMULATION

LOGGER = logging.getLogger(__name__)


def authenticate_node(state: PipelineState, client: GraphClient) -> PipelineState:
    if state.simulate:
        LOGGER.log(SIMULATION, "Simulation mode is ON: decisions are logged, no device is changed")
    # AuthenticationError propagates and ends the run
    client.authenticate()
    LOGGER.info("Authenticated against tenant %s", client.auth.credentials.tenant_id)
    state.authenticated = True
    return state
