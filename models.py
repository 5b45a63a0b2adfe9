"""
Independent college football poll - database models
Users, the team catalog, voting periods, and ranked ballots
"""
from sqlalchemy import Column, Integer, String, Boolean, DateTime, ForeignKey, Text, Index, UniqueConstraint, func, text
from sqlalchemy.orm import relationship
from db import Base


# Ballot variants
BALLOT_IN_PROGRESS = "in_progress"
BALLOT_FINAL = "final"
BALLOT_TYPES = (BALLOT_IN_PROGRESS, BALLOT_FINAL)


# ============================================================
# USER & AUTHENTICATION
# ============================================================

class User(Base):
    """Registered voters"""
    __tablename__ = "users"

    id = Column(Integer, primary_key=True)
    username = Column(String(80), unique=True, nullable=False, index=True)
    email = Column(String(255), unique=True, nullable=False)
    pw_hash = Column(String(255), nullable=False)
    is_admin = Column(Boolean, default=False, nullable=False)

    # Timestamps
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    last_login_at = Column(DateTime(timezone=True), nullable=True)

    # Relationships
    ballots = relationship("Ballot", back_populates="user", cascade="all, delete-orphan")
    account = relationship("UserAccount", back_populates="user", uselist=False, cascade="all, delete-orphan")

    # Flask-Login helpers
    @property
    def is_authenticated(self):
        return True

    @property
    def is_active(self):
        return True

    @property
    def is_anonymous(self):
        return False

    def get_id(self):
        return str(self.id)

    def to_dict(self):
        return {"id": self.id, "name": self.username, "email": self.email}

    def __repr__(self):
        return f"<User {self.username}>"


class UserAccount(Base):
    """
    Optional profile details for a voter
    The row is created the first time the user saves any of these fields
    """
    __tablename__ = "user_accounts"

    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True)
    favorite_team_id = Column(Integer, ForeignKey("teams.id", ondelete="SET NULL"), nullable=True)

    # Media credentials; the *_verified flags are set by admins only
    podcast = Column(Boolean, default=False, nullable=False)
    podcast_url = Column(String(512), nullable=True)
    podcast_followers = Column(Integer, nullable=True)
    podcast_verified = Column(Boolean, default=False, nullable=False)

    sports_media = Column(Boolean, default=False, nullable=False)
    sports_media_url = Column(String(512), nullable=True)
    sports_media_verified = Column(Boolean, default=False, nullable=False)

    sports_broadcast = Column(Boolean, default=False, nullable=False)
    sports_broadcast_url = Column(String(512), nullable=True)
    sports_broadcast_verified = Column(Boolean, default=False, nullable=False)

    user = relationship("User", back_populates="account")
    favorite_team = relationship("Team")

    def to_dict(self):
        return {
            "favorite_team_id": self.favorite_team_id,
            "favorite_team_name": self.favorite_team.name if self.favorite_team else None,
            "podcast": bool(self.podcast),
            "podcast_url": self.podcast_url,
            "podcast_followers": self.podcast_followers,
            "podcast_verified": bool(self.podcast_verified),
            "sports_media": bool(self.sports_media),
            "sports_media_url": self.sports_media_url,
            "sports_media_verified": bool(self.sports_media_verified),
            "sports_broadcast": bool(self.sports_broadcast),
            "sports_broadcast_url": self.sports_broadcast_url,
            "sports_broadcast_verified": bool(self.sports_broadcast_verified),
        }

    def __repr__(self):
        return f"<UserAccount user={self.user_id}>"


# ============================================================
# CATALOG
# ============================================================

class Team(Base):
    """NCAA D1 football teams that can be ranked"""
    __tablename__ = "teams"

    id = Column(Integer, primary_key=True)
    name = Column(String(128), unique=True, nullable=False, index=True)
    badge_b64 = Column(Text, nullable=True)  # raw base64 PNG or a full data URI

    @property
    def image_src(self):
        if not self.badge_b64:
            return None
        if self.badge_b64.startswith("data:"):
            return self.badge_b64
        return f"data:image/png;base64,{self.badge_b64}"

    def to_dict(self):
        return {"id": self.id, "name": self.name, "image": self.image_src}

    def __repr__(self):
        return f"<Team {self.name}>"


class BallotPeriod(Base):
    """
    A voting window within a season
    Ballots can only be submitted as final while the poll is open
    """
    __tablename__ = "ballot_periods"

    id = Column(Integer, primary_key=True)
    season = Column(String(8), nullable=False, index=True)  # e.g. "2025"
    period = Column(Integer, nullable=False)  # ordinal within the season
    period_name = Column(String(64), nullable=False)  # e.g. "Week 5"

    period_beg_dt = Column(DateTime(timezone=True), nullable=False)
    period_end_dt = Column(DateTime(timezone=True), nullable=False)
    poll_open_dt = Column(DateTime(timezone=True), nullable=False)
    poll_close_dt = Column(DateTime(timezone=True), nullable=False)

    ballots = relationship("Ballot", back_populates="period")

    __table_args__ = (
        UniqueConstraint("season", "period", name="uq_ballot_periods_season_period"),
    )

    def to_dict(self):
        return {
            "id": self.id,
            "season": self.season,
            "period": self.period,
            "period_name": self.period_name,
            "period_beg_dt": self.period_beg_dt.isoformat() if self.period_beg_dt else None,
            "period_end_dt": self.period_end_dt.isoformat() if self.period_end_dt else None,
            "poll_open_dt": self.poll_open_dt.isoformat() if self.poll_open_dt else None,
            "poll_close_dt": self.poll_close_dt.isoformat() if self.poll_close_dt else None,
        }

    def __repr__(self):
        return f"<BallotPeriod {self.season} {self.period_name}>"


# ============================================================
# BALLOTS
# ============================================================

class Ballot(Base):
    """
    One user's ranking for a ballot variant
    Drafts have no period; final ballots belong to the period they were submitted in
    """
    __tablename__ = "ballots"

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    ballot_type = Column(String(20), nullable=False, default=BALLOT_IN_PROGRESS)  # "in_progress" or "final"
    ballot_period_id = Column(Integer, ForeignKey("ballot_periods.id", ondelete="SET NULL"), nullable=True, index=True)

    # Timestamps
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now())

    # Relationships
    user = relationship("User", back_populates="ballots")
    period = relationship("BallotPeriod", back_populates="ballots")
    rankings = relationship(
        "BallotRanking",
        back_populates="ballot",
        cascade="all, delete-orphan",
        order_by="BallotRanking.rank",
    )

    __table_args__ = (
        UniqueConstraint("user_id", "ballot_type", "ballot_period_id", name="uq_ballots_user_type_period"),
        # NULL periods never collide in the constraint above; one draft per user needs a partial index
        Index(
            "uq_ballots_user_type_no_period",
            "user_id",
            "ballot_type",
            unique=True,
            postgresql_where=text("ballot_period_id IS NULL"),
            sqlite_where=text("ballot_period_id IS NULL"),
        ),
        Index("ix_ballots_user_type", "user_id", "ballot_type"),
    )

    def __repr__(self):
        return f"<Ballot {self.id} user={self.user_id} {self.ballot_type}>"


class BallotRanking(Base):
    """A single (team, rank) entry on a ballot"""
    __tablename__ = "ballot_rankings"

    id = Column(Integer, primary_key=True)
    ballot_id = Column(Integer, ForeignKey("ballots.id", ondelete="CASCADE"), nullable=False, index=True)
    team_id = Column(Integer, ForeignKey("teams.id"), nullable=False)
    rank = Column(Integer, nullable=False)  # 1 = best

    ballot = relationship("Ballot", back_populates="rankings")
    team = relationship("Team")

    __table_args__ = (
        UniqueConstraint("ballot_id", "rank", name="uq_ballot_rankings_ballot_rank"),
        UniqueConstraint("ballot_id", "team_id", name="uq_ballot_rankings_ballot_team"),
    )

    def __repr__(self):
        return f"<BallotRanking #{self.rank} team={self.team_id}>"
