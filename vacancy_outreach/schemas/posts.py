from datetime import datetime

from pydantic import BaseModel, ConfigDict


class Identity(BaseModel):
    model_config = ConfigDict(frozen=True)

    numeric_id: str
    username: str | None = None

    @property
    def handle(self) -> str | None:
        if not self.username:
            return None
        return f"@{self.username.lstrip('@')}"


class ChannelPost(BaseModel):
    model_config = ConfigDict(frozen=True)

    channel_ref: str
    post_id: int
    raw_text: str
    published_at: datetime
    author_hint: str | None = None
    channel_username: str | None = None
