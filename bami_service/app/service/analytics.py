# Read-only reporting over stored cases for the admin dashboard
from typing import Any, Dict, List

from bami_service.app.models import CaseRecord, Stage

LATEST_LEADS_LIMIT = 50


def build_analytics(cases: List[CaseRecord]) -> Dict[str, Any]:
    total = len(cases)
    stage_counts = {stage.value: 0 for stage in Stage}
    by_product: Dict[str, int] = {}
    missing_total = 0

    for case in cases:
        if case.stage in stage_counts:
            stage_counts[case.stage] += 1
        by_product[case.product] = by_product.get(case.product, 0) + 1
        missing_total += len(case.missing)

    approved = stage_counts[Stage.APPROVED.value]
    totals = {
        "cases": total,
        "approved": approved,
        "alternative_offered": stage_counts[Stage.ALTERNATIVE_OFFERED.value],
        "under_review": stage_counts[Stage.UNDER_REVIEW.value],
        "missing_avg": missing_total / total if total else 0,
        "approval_rate": approved / total if total else 0,
    }

    latest = sorted(cases, key=lambda case: case.created_at, reverse=True)[:LATEST_LEADS_LIMIT]
    leads = [
        {
            "id": case.id,
            "product": case.product,
            "channel": case.channel,
            "applicant": case.applicant,
            "stage": case.stage,
            "missing_count": len(case.missing),
            "created_at": case.created_at,
        }
        for case in latest
    ]
    return {"totals": totals, "funnel": stage_counts, "by_product": by_product, "leads": leads}


def list_case_items(cases: List[CaseRecord]) -> List[Dict[str, Any]]:
    return [
        {"id": case.id, "product": case.product, "stage": case.stage, "channel": case.channel, "created_at": case.created_at}
        for case in cases
    ]
