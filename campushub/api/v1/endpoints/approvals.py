"""Approval router: reviewer decisions and review queues."""

import logging
from typing import List, Optional
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from campushub.constants.constants import ApprovalStatus, Capability
from campushub.core.database import aget_db
from campushub.core.exceptions import CampusHubError
from campushub.core.security import get_current_user, require_capability
from campushub.models.user import User
from campushub.schemas.events import (
    ApprovalDecisionRequest, ApprovalDecisionResponse, EventApprovalResponse, PendingApprovalResponse,
)
from campushub.services.ApprovalWorkflow import ApprovalWorkflow

logger = logging.getLogger(__name__)

router = APIRouter(tags=["approvals"])


async def _decide(event_id: str, decision: ApprovalStatus, request: Optional[ApprovalDecisionRequest],
                  current_user: User, db: AsyncSession):
    request = request or ApprovalDecisionRequest()
    try:
        event, approval = await ApprovalWorkflow(db).submit_decision(
            event_id, current_user, decision, request.comments, request.stage
        )
    except (HTTPException, CampusHubError):
        raise
    except Exception as e:
        await db.rollback()
        logger.exception(f"Error recording {decision.value} on event {event_id}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to record decision"
        )
    return {"event": event, "approval": approval}


@router.post("/events/{event_id}/approve", response_model=ApprovalDecisionResponse)
async def approve_event(
    event_id: str,
    request: Optional[ApprovalDecisionRequest] = None,
    current_user: User = Depends(require_capability(Capability.event_approve)),
    db: AsyncSession = Depends(aget_db)
):
    """Sign your stage of the event's review. The event is approved once enough stages agree."""
    return await _decide(event_id, ApprovalStatus.approved, request, current_user, db)


@router.post("/events/{event_id}/reject", response_model=ApprovalDecisionResponse)
async def reject_event(
    event_id: str,
    request: Optional[ApprovalDecisionRequest] = None,
    current_user: User = Depends(require_capability(Capability.event_approve)),
    db: AsyncSession = Depends(aget_db)
):
    """Reject the event. A single rejection is final."""
    return await _decide(event_id, ApprovalStatus.rejected, request, current_user, db)


@router.get("/events/{event_id}/approvals", response_model=List[EventApprovalResponse])
async def list_event_approvals(
    event_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(aget_db)
):
    return await ApprovalWorkflow(db).list_approvals(event_id)


@router.get("/approvals/pending", response_model=List[PendingApprovalResponse])
async def my_pending_approvals(
    current_user: User = Depends(require_capability(Capability.event_approve)),
    db: AsyncSession = Depends(aget_db)
):
    """Undecided review stages the current user can sign."""
    pending = await ApprovalWorkflow(db).pending_approvals_for(current_user)
    return [{"approval": approval, "event": event} for approval, event in pending]
