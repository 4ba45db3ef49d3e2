import logging
from typing import Iterable, Mapping

from intune.graph import GraphClient
from intune.models import Device
from pipeline.decision import decide
from pipeline.state import DecisionKind, DeviceOutcome, Outcome, PipelineState, RunSummary
from settings.log import SIMULATION

LOGGER = logging.getLogger(__name__)


def _label(category) -> str:
    return category if category else "<none>"


def process_device(
    client: GraphClient,
    device: Device,
    catalog: Mapping[str, str],
    no_category_labels: Iterable[str],
    simulate: bool,
) -> DeviceOutcome:
    name = device.display_name or device.id
    base = {"device_id": device.id, "device_name": device.display_name, "previous_category": device.category}

    user_id = client.get_primary_user_id(device.id)
    profile = client.get_user(user_id) if user_id else None
    decision = decide(device, user_id, profile, catalog, no_category_labels)

    if decision.kind is DecisionKind.NO_PRIMARY_USER:
        LOGGER.warning("%s: no primary user, category left as %s", name, _label(device.category))
        return DeviceOutcome(outcome=Outcome.SKIPPED, skip_reason=decision.skip_reason, **base)

    if decision.kind is DecisionKind.NO_DEPARTMENT:
        LOGGER.warning("%s: primary user %s has no department", name, profile.display_name or profile.id)
        return DeviceOutcome(outcome=Outcome.SKIPPED, skip_reason=decision.skip_reason, **base)

    if decision.kind is DecisionKind.NO_MATCHING_CATEGORY:
        LOGGER.warning("%s: department '%s' has no matching device category", name, decision.department)
        return DeviceOutcome(
            outcome=Outcome.SKIPPED,
            skip_reason=decision.skip_reason,
            target_category=decision.department,
            **base,
        )

    if decision.kind is DecisionKind.ALREADY_CORRECT:
        LOGGER.info("%s: already in category '%s'", name, decision.department)
        return DeviceOutcome(outcome=Outcome.ALREADY_CORRECT, target_category=decision.department, **base)

    if simulate:
        LOGGER.log(
            SIMULATION,
            "%s: would change category %s -> '%s'",
            name, _label(device.category), decision.department,
        )
        return DeviceOutcome(
            outcome=Outcome.UPDATED,
            target_category=decision.department,
            simulated=True,
            **base,
        )

    if client.assign_category(device.id, decision.category_id):
        LOGGER.info("%s: category changed %s -> '%s'", name, _label(device.category), decision.department)
        return DeviceOutcome(outcome=Outcome.UPDATED, target_category=decision.department, **base)

    LOGGER.error("%s: update to category '%s' was rejected", name, decision.department)
    return DeviceOutcome(
        outcome=Outcome.ERRORED,
        target_category=decision.department,
        detail="category update rejected",
        **base,
    )


def reconcile_devices_node(state: PipelineState, client: GraphClient) -> PipelineState:
    catalog = state.catalog if state.catalog is not None else {}
    summary = RunSummary(simulation=state.simulate)
    outcomes = []
    for device in state.devices:
        try:
            result = process_device(client, device, catalog, state.no_category_labels, state.simulate)
        except Exception as exc:  # one device must never abort the run
            LOGGER.error("%s: failed to process device: %s", device.display_name or device.id, exc)
            result = DeviceOutcome(
                device_id=device.id,
                device_name=device.display_name,
                previous_category=device.category,
                outcome=Outcome.ERRORED,
                detail=f"{type(exc).__name__}: {exc}",
            )
        outcomes.append(result)
        summary = summary.record(result)

    state.outcomes = outcomes
    state.summary = summary
    return state
