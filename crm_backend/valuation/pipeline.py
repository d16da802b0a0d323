"""Pipeline statistics over client rows."""

from decimal import Decimal
from typing import Any, Dict, Iterable, Mapping

from crm_backend.utils.constants import CLIENT_STAGES
from crm_backend.valuation.deal import deal_value_for_client


def pipeline_stats(clients: Iterable[Mapping[str, Any]]) -> Dict[str, Any]:
    """
    Count clients per stage and total the value of open and won deals.

    Lost clients are counted but excluded from pipeline_value.
    Unknown stages are counted under their own key.
    """
    by_stage: Dict[str, int] = {stage: 0 for stage in CLIENT_STAGES}
    pipeline_value = Decimal("0.00")
    closed_value = Decimal("0.00")
    total = 0

    for client in clients:
        total += 1
        stage = client.get("stage") or "prospect"
        by_stage[stage] = by_stage.get(stage, 0) + 1
        if stage == "lost":
            continue
        value = deal_value_for_client(client)
        pipeline_value += value
        if stage == "closed":
            closed_value += value

    return {
        "total_clients": total,
        "by_stage": by_stage,
        "pipeline_value": pipeline_value,
        "closed_value": closed_value,
    }
