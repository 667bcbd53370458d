"""Poll voting engine and read-side tallies."""
from __future__ import annotations

import logging
from collections import defaultdict
from typing import Any

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload

from commflock.core.errors import AlreadyVoted, InvalidOption, NotFoundError, PollClosed
from commflock.db.time import as_utc, utcnow
from commflock.models import Community, Poll, PollVote, User
from commflock.schemas.poll import PollCreate
from commflock.services.membership import require_approved_member, require_moderator

logger = logging.getLogger(__name__)

__all__ = [
    "create_poll",
    "get_poll",
    "is_closed",
    "list_polls",
    "poll_detail",
    "tally",
    "vote",
]


def is_closed(poll: Poll) -> bool:
    """Return True once the poll's end time has passed."""
    return poll.ends_at is not None and as_utc(poll.ends_at) < utcnow()


def create_poll(db: Session, community: Community, payload: PollCreate, acting_user: User) -> Poll:
    """Create a poll in ``community``; moderators only."""
    require_moderator(db, community, acting_user)
    poll = Poll(
        community_id=community.id,
        question=payload.question,
        options=[option.model_dump() for option in payload.options],
        ends_at=payload.ends_at,
        show_votes=payload.show_votes,
        created_by_id=acting_user.id,
    )
    db.add(poll)
    db.commit()
    db.refresh(poll)
    logger.info("Poll %s created in %s", poll.id, community.slug)
    return poll


def get_poll(db: Session, community: Community, poll_id: int) -> Poll:
    """Return a poll that belongs to ``community``.

    Raises:
        NotFoundError: If it does not exist or lives in another community
    """
    poll = db.get(Poll, poll_id)
    if poll is None or poll.community_id != community.id:
        raise NotFoundError("Poll not found")
    return poll


def list_polls(db: Session, community: Community) -> list[Poll]:
    """Return a community's polls, newest first."""
    return (
        db.query(Poll)
        .filter(Poll.community_id == community.id)
        .order_by(Poll.created_at.desc(), Poll.id.desc())
        .all()
    )


def vote(db: Session, poll_id: int, user: User, option_key: str) -> PollVote:
    """Record ``user``'s single choice on a poll.

    Raises:
        NotFoundError: If the poll does not exist
        PollClosed: If the poll has ended
        InvalidOption: If ``option_key`` is not one of the poll's keys
        AlreadyVoted: If the user already voted, including a concurrent vote
            that landed first
        MembershipRequired: If the user is not an approved member
    """
    poll = db.get(Poll, poll_id)
    if poll is None:
        raise NotFoundError("Poll not found")
    if is_closed(poll):
        raise PollClosed()
    if option_key not in poll.option_keys:
        raise InvalidOption()
    existing = (
        db.query(PollVote.id)
        .filter(PollVote.poll_id == poll.id, PollVote.user_id == user.id)
        .first()
    )
    if existing is not None:
        raise AlreadyVoted()
    require_approved_member(db, poll.community_id, user)

    ballot = PollVote(poll_id=poll.id, user_id=user.id, option_key=option_key)
    db.add(ballot)
    try:
        db.commit()
    except IntegrityError as err:
        db.rollback()
        raise AlreadyVoted() from err
    db.refresh(ballot)
    logger.info("User %s voted on poll %s", user.username, poll_id)
    return ballot


def tally(db: Session, poll: Poll) -> list[dict[str, Any]]:
    """Count votes per option in declared option order.

    Percentages are rounded to one decimal and are 0 when nobody voted.
    Voter summaries are included only for polls with ``show_votes`` set.
    """
    votes = (
        db.query(PollVote)
        .options(joinedload(PollVote.user))
        .filter(PollVote.poll_id == poll.id)
        .order_by(PollVote.created_at, PollVote.id)
        .all()
    )
    by_option: dict[str, list[PollVote]] = defaultdict(list)
    for ballot in votes:
        by_option[ballot.option_key].append(ballot)

    total = len(votes)
    results = []
    for option in poll.options:
        ballots = by_option.get(option["key"], [])
        count = len(ballots)
        entry: dict[str, Any] = {
            "key": option["key"],
            "label": option["label"],
            "votes": count,
            "percentage": round(count / total * 100, 1) if total else 0.0,
        }
        if poll.show_votes:
            entry["voters"] = [{"id": b.user.id, "username": b.user.username} for b in ballots]
        results.append(entry)
    return results


def poll_detail(db: Session, poll: Poll) -> dict[str, Any]:
    """Return the poll fields together with its tally."""
    results = tally(db, poll)
    return {
        "id": poll.id,
        "community_id": poll.community_id,
        "question": poll.question,
        "options": poll.options,
        "ends_at": poll.ends_at,
        "show_votes": poll.show_votes,
        "created_by_id": poll.created_by_id,
        "created_at": poll.created_at,
        "is_closed": is_closed(poll),
        "total_votes": sum(entry["votes"] for entry in results),
        "results": results,
    }
