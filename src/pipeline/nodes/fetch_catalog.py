import logging

import httpx

from intune.errors import CatalogFetchError, GraphRequestError
from intune.graph import GraphClient
from intune.models import CategoryCatalog
from pipeline.state import PipelineState

LOGGER = logging.getLogger(__name__)

# failures that leave the reference data incomplete
FETCH_ERRORS = (httpx.HTTPError, GraphRequestError, ValueError)


def fetch_catalog_node(state: PipelineState, client: GraphClient) -> PipelineState:
    try:
        categories = client.list_categories()
    except FETCH_ERRORS as exc:
        raise CatalogFetchError(f"Could not fetch device categories: {exc}") from exc

    state.catalog = CategoryCatalog(categories)
    LOGGER.info("Fetched %d device categories: %s", len(state.catalog), ", ".join(state.catalog.names()))
    return state


def fetch_devices_node(state: PipelineState, client: GraphClient) -> PipelineState:
    try:
        devices = client.list_devices(state.operating_system)
    except FETCH_ERRORS as exc:
        raise CatalogFetchError(f"Could not fetch {state.operating_system} devices: {exc}") from exc

    state.devices = devices
    LOGGER.info("Fetched %d %s devices", len(devices), state.operating_system)
    return state
