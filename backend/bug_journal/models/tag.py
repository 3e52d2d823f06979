from sqlalchemy import ForeignKey, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from bug_journal.database import Base


class IssueTag(Base):
    __tablename__ = "issue_tags"
    __table_args__ = (UniqueConstraint("issue_id", "tag_id", name="uq_issue_tag"),)

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    issue_id: Mapped[int] = mapped_column(ForeignKey("issues.id", ondelete="CASCADE"), index=True, nullable=False)
    tag_id: Mapped[int] = mapped_column(ForeignKey("tags.id", ondelete="CASCADE"), index=True, nullable=False)

    issue = relationship("Issue", back_populates="issue_tags")
    tag = relationship("Tag", back_populates="issue_tags")


class Tag(Base):
    __tablename__ = "tags"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(50), unique=True, nullable=False)
    color: Mapped[str] = mapped_column(String(7), nullable=False)  # hex color like #FF5733

    issue_tags = relationship("IssueTag", back_populates="tag")
    issues = relationship("Issue", secondary="issue_tags", back_populates="tags", viewonly=True)
