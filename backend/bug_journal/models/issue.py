from datetime import date as calendar_date, datetime

from sqlalchemy import Date, ForeignKey, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from bug_journal.database import Base

ISSUE_STATUSES = ("unresolved", "in_progress", "resolved")


class Issue(Base):
    __tablename__ = "issues"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), index=True, nullable=False)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    steps_to_reproduce: Mapped[str | None] = mapped_column(Text, nullable=True)
    solution: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(String(20), default="unresolved", nullable=False)
    # Calendar day the issue belongs to; independent of created_at.
    date: Mapped[calendar_date] = mapped_column(Date, default=calendar_date.today, index=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(default=datetime.utcnow, onupdate=datetime.utcnow)

    user = relationship("User", back_populates="issues")
    issue_tags = relationship("IssueTag", back_populates="issue")
    tags = relationship("Tag", secondary="issue_tags", back_populates="issues", viewonly=True)
    links = relationship("IssueLink", back_populates="issue")
    files = relationship("IssueFile", back_populates="issue")
