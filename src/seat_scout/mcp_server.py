"""MCP server for childcare admission scoring.

Exposes the scoring engine and the per-child score history as MCP tools
so that AI agents can ask "what are this child's chances at this
facility?" directly.

Run with:
    seat-scout mcp            # stdio transport (default)
    seat-scout mcp --sse      # SSE transport on port 8080
"""

import json
import logging
from typing import Annotated

from mcp.server.fastmcp import FastMCP
from pydantic import Field

from seat_scout.errors import SeatScoutError
from seat_scout.scoring.summary import format_summary
from seat_scout.services import history_store, scoring_service

logger = logging.getLogger(__name__)

mcp = FastMCP("seat-scout")


@mcp.tool()
def admission_score(
    facility_id: Annotated[str, Field(description="Facility identifier.")],
    child_id: Annotated[str, Field(description="Child identifier.")],
    target_class: Annotated[
        str, Field(description="Age-class band: age_0, age_1, ... age_5.")
    ],
    priority_type: Annotated[
        str,
        Field(description="Primary priority classification (e.g. dual_income, none)."),
    ] = "none",
    additional_priorities: Annotated[
        list[str] | None,
        Field(description="Secondary priority classifications."),
    ] = None,
    waiting_position: Annotated[
        int | None, Field(description="Current waitlist position, if known.")
    ] = None,
    as_text: Annotated[
        bool, Field(description="Return a plain-text summary instead of JSON.")
    ] = False,
) -> str:
    """Compute the admission probability, grade, confidence, expected wait,
    similar past cases and recommendations for a child at a facility.

    The result is a statistical estimate, not a guarantee of a place.
    """
    payload = {
        "facilityId": facility_id,
        "childId": child_id,
        "targetClass": target_class,
        "priorityType": priority_type,
        "additionalPriorities": additional_priorities or [],
        "waitingPosition": waiting_position,
    }
    try:
        result = scoring_service.score(payload)
    except SeatScoutError as exc:
        logger.info("admission_score tool failed: %s", exc)
        return json.dumps({"error": str(exc), "errorType": type(exc).__name__})

    if as_text:
        return format_summary(result)
    return result.model_dump_json(indent=2)


@mcp.tool()
def score_history(
    child_id: Annotated[str, Field(description="Child identifier.")],
    limit: Annotated[
        int, Field(description="Maximum number of scores to return.", ge=1, le=100)
    ] = 20,
) -> str:
    """List the scores previously computed for a child, newest first."""
    entries = history_store.get_score_history(child_id, limit=limit)
    return json.dumps(
        {
            "childId": child_id,
            "results": [e.model_dump(mode="json") for e in entries],
            "total": len(entries),
        },
        indent=2,
    )
