"""
Ballot persistence service
Stores a user's ranking for a ballot variant with replace-all saves
"""
import logging
from datetime import datetime
from typing import Dict, List, Optional, Tuple

from sqlalchemy import select, delete
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from models import Ballot, BallotRanking, Team, BALLOT_IN_PROGRESS, BALLOT_FINAL, BALLOT_TYPES
from services.ranking_engine import MAX_RANK, RankingEngine, RankItem
from utils.period_helpers import get_current_period, utcnow

logger = logging.getLogger(__name__)


class BallotError(Exception):
    """Base class for ballot save/submit failures"""


class BallotValidationError(BallotError):
    """Payload rejected before touching the database (HTTP 400)"""


class NoOpenPeriodError(BallotValidationError):
    """Final submission attempted while no voting period is open"""


class BallotPersistenceError(BallotError):
    """Database failure; the previous rankings are left as they were (HTTP 500)"""


def _is_int(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def validate_entries(entries) -> List[Tuple[int, int]]:
    """
    Check a rankings payload and normalize it to [(team_id, rank), ...]

    Accepts API dicts ({"teamId": 5, "rank": 1}) or (team_id, rank) pairs.
    Raises BallotValidationError with a message fit to show the user.
    """
    if not isinstance(entries, (list, tuple)) or len(entries) == 0:
        raise BallotValidationError("Rankings array is required")

    if len(entries) > MAX_RANK:
        raise BallotValidationError(f"Maximum {MAX_RANK} teams can be ranked")

    normalized = []
    seen_teams, seen_ranks = set(), set()
    for entry in entries:
        if isinstance(entry, dict):
            team_id, rank = entry.get("teamId"), entry.get("rank")
        elif isinstance(entry, (list, tuple)) and len(entry) == 2:
            team_id, rank = entry
        else:
            raise BallotValidationError("Each ranking needs a teamId and a rank")

        if not _is_int(team_id) or not _is_int(rank):
            raise BallotValidationError("teamId and rank must be integers")
        if not 1 <= rank <= MAX_RANK:
            raise BallotValidationError(f"Rank must be between 1 and {MAX_RANK}")
        if team_id in seen_teams:
            raise BallotValidationError("Duplicate team in your ballot")
        if rank in seen_ranks:
            raise BallotValidationError(f"Rank {rank} is used more than once")

        seen_teams.add(team_id)
        seen_ranks.add(rank)
        normalized.append((team_id, rank))

    return normalized


class BallotService:
    """Load, save, and submit ballots for one database session"""

    def __init__(self, db_session: Session):
        self.db = db_session

    def get_ballot(
        self,
        user_id: int,
        ballot_type: str,
        period_id: Optional[int] = None,
        for_update: bool = False
    ) -> Optional[Ballot]:
        """
        Most recently updated ballot for (user, variant, period)

        With for_update=True the row is locked (SELECT ... FOR UPDATE) until
        the current transaction ends.
        """
        q = select(Ballot).where(Ballot.user_id == user_id, Ballot.ballot_type == ballot_type)
        if period_id is None:
            q = q.where(Ballot.ballot_period_id.is_(None))
        else:
            q = q.where(Ballot.ballot_period_id == period_id)

        q = q.order_by(Ballot.updated_at.desc(), Ballot.id.desc()).limit(1)
        if for_update:
            q = q.with_for_update()

        return self.db.execute(q).scalars().first()

    def load_ranking(
        self,
        user_id: int,
        ballot_type: str = BALLOT_IN_PROGRESS,
        period_id: Optional[int] = None
    ) -> List[Dict]:
        """
        Rankings for the user's ballot, best rank first

        Returns:
            [{"teamId": 12, "rank": 1, "team": {"id": 12, "name": ..., "image": ...}}, ...]
            or [] if the user has never saved this ballot
        """
        ballot = self.get_ballot(user_id, ballot_type, period_id)
        if not ballot:
            return []

        rows = self.db.execute(
            select(BallotRanking, Team)
            .join(Team, BallotRanking.team_id == Team.id)
            .where(BallotRanking.ballot_id == ballot.id)
            .order_by(BallotRanking.rank.asc())
        ).all()

        return [
            {"teamId": team.id, "rank": ranking.rank, "team": team.to_dict()}
            for ranking, team in rows
        ]

    def save_ranking(
        self,
        user_id: int,
        ballot_type: str,
        entries,
        period_id: Optional[int] = None
    ) -> int:
        """
        Replace every ranking on the user's ballot with `entries`

        The ballot row is created on first save and re-stamped afterwards.
        Delete + insert commit together or not at all. Concurrent saves of the
        same ballot are serialized on the ballot row, so the last one wins.

        Returns:
            The ballot id
        """
        rankings = validate_entries(entries)
        if ballot_type not in BALLOT_TYPES:
            raise BallotValidationError(f"Unknown ballot type: {ballot_type}")

        self._check_teams_exist([team_id for team_id, _ in rankings])

        for attempt in (1, 2):
            try:
                ballot_id = self._replace_rankings(user_id, ballot_type, period_id, rankings)
                self.db.commit()
                break
            except IntegrityError as e:
                self.db.rollback()
                if attempt == 2:
                    logger.error(f"Ballot save failed for user {user_id} ({ballot_type}): {e}")
                    raise BallotPersistenceError("Could not save ballot") from e
                # Another save created the ballot row first; the retry locks and replaces it
                logger.warning(f"Ballot for user {user_id} ({ballot_type}) was created concurrently, retrying")
            except SQLAlchemyError as e:
                self.db.rollback()
                logger.error(f"Ballot save failed for user {user_id} ({ballot_type}): {e}")
                raise BallotPersistenceError("Could not save ballot") from e

        logger.info(f"Saved {len(rankings)} rankings to ballot {ballot_id} (user {user_id}, {ballot_type})")
        return ballot_id

    def submit_final(self, user_id: int, entries, now: Optional[datetime] = None) -> int:
        """Save `entries` as the user's final ballot for the open voting period"""
        rankings = validate_entries(entries)

        period = get_current_period(self.db, now)
        if period is None:
            raise NoOpenPeriodError("No active ballot period found")

        return self.save_ranking(user_id, BALLOT_FINAL, rankings, period_id=period.id)

    def build_engine(
        self,
        user_id: int,
        ballot_type: str = BALLOT_IN_PROGRESS,
        period_id: Optional[int] = None
    ) -> RankingEngine:
        """Ranking engine over the whole team catalog, loaded with the user's saved ballot"""
        teams = self.db.execute(select(Team).order_by(Team.name)).scalars()
        catalog = [RankItem.from_team(team) for team in teams]
        return RankingEngine.from_payload(catalog, self.load_ranking(user_id, ballot_type, period_id))

    def _replace_rankings(self, user_id: int, ballot_type: str, period_id: Optional[int], rankings) -> int:
        """Create or lock the ballot row and swap in `rankings`. The caller commits."""
        now = utcnow()
        ballot = self.get_ballot(user_id, ballot_type, period_id, for_update=True)
        if ballot is None:
            ballot = Ballot(
                user_id=user_id,
                ballot_type=ballot_type,
                ballot_period_id=period_id,
                created_at=now,
                updated_at=now
            )
            self.db.add(ballot)
            self.db.flush()
        else:
            ballot.updated_at = now
            self.db.execute(
                delete(BallotRanking)
                .where(BallotRanking.ballot_id == ballot.id)
            )

        self._insert_rankings(ballot.id, rankings)
        return ballot.id

    def _check_teams_exist(self, team_ids: List[int]):
        found = set(self.db.execute(select(Team.id).where(Team.id.in_(team_ids))).scalars())
        missing = sorted(set(team_ids) - found)
        if missing:
            raise BallotValidationError(f"Unknown team id(s): {', '.join(str(t) for t in missing)}")

    def _insert_rankings(self, ballot_id: int, rankings: List[Tuple[int, int]]):
        self.db.add_all(
            BallotRanking(ballot_id=ballot_id, team_id=team_id, rank=rank)
            for team_id, rank in rankings
        )
        self.db.flush()
