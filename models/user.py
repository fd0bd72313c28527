from sqlalchemy import Column, String, Text
from sqlalchemy.orm import relationship, validates

from models.base_model import Base, BaseModel
from models.video import watch_history


def normalize_identity(value):
    """Usernames and emails are stored trimmed and lowercased."""
    return value.strip().lower() if isinstance(value, str) else value


class User(BaseModel, Base):
    __tablename__ = "users"

    username = Column(String(64), nullable=False, unique=True, index=True)
    email = Column(String(255), nullable=False, unique=True, index=True)
    fullname = Column(String(255), nullable=True)
    avatar = Column(String(512), nullable=True)  # blob storage url
    cover_image = Column(String(512), nullable=True)  # blob storage url
    password_hash = Column(String(255), nullable=False)
    # Single currently-issued refresh token; null once logged out
    refresh_token = Column(Text, nullable=True)

    videos = relationship("Video", back_populates="owner", passive_deletes=True)
    watch_history = relationship(
        "Video",
        secondary=watch_history,
        order_by=watch_history.c.watched_at.desc(),
        viewonly=True,
    )

    @validates("username", "email")
    def _normalize(self, key, value):
        return normalize_identity(value)

    @property
    def password(self):
        raise AttributeError("Password: Write-only field")
