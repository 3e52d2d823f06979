from datetime import datetime

from sqlalchemy import ForeignKey, Integer, LargeBinary, String
from sqlalchemy.orm import Mapped, deferred, mapped_column, relationship

from bug_journal.database import Base


class IssueFile(Base):
    __tablename__ = "issue_files"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    # NULL until the upload is attached to an issue
    issue_id: Mapped[int | None] = mapped_column(
        ForeignKey("issues.id", ondelete="CASCADE"), index=True, nullable=True
    )
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), index=True, nullable=False)
    original_name: Mapped[str] = mapped_column(String(255), nullable=False)
    size: Mapped[int] = mapped_column(Integer, nullable=False)
    mime_type: Mapped[str] = mapped_column(String(255), nullable=False)
    content: Mapped[bytes] = deferred(mapped_column(LargeBinary, nullable=False))
    created_at: Mapped[datetime] = mapped_column(default=datetime.utcnow)

    issue = relationship("Issue", back_populates="files")
    user = relationship("User", back_populates="files")

    @property
    def url(self) -> str:
        return f"/api/files/{self.id}"
