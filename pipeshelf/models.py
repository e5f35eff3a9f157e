from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Optional

IMAGE_EXTENSIONS = frozenset({"jpg", "jpeg", "png", "gif", "webp", "svg"})


def is_image_file(file_name: str) -> bool:
    if "." not in file_name:
        return False
    ext = file_name.rsplit(".", 1)[-1].lower()
    return ext in IMAGE_EXTENSIONS


@dataclass(frozen=True)
class Account:
    username: str
    password: str
    user_id: str
    user_app_key: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "username": self.username,
            "password": self.password,
            "userId": self.user_id,
            "userAppKey": self.user_app_key,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Account":
        return cls(
            username=str(data["username"]),
            password=str(data["password"]),
            user_id=str(data["userId"]),
            user_app_key=str(data["userAppKey"]),
        )


@dataclass(frozen=True)
class FileRecord:
    file_id: str
    file_name: str
    size: int
    uploaded_at: datetime

    @property
    def is_image(self) -> bool:
        return is_image_file(self.file_name)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "fileId": self.file_id,
            "fileName": self.file_name,
            "size": self.size,
            "uploadedAt": self.uploaded_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FileRecord":
        uploaded_at = datetime.fromisoformat(str(data["uploadedAt"]).replace("Z", "+00:00"))
        if uploaded_at.tzinfo is None:
            uploaded_at = uploaded_at.replace(tzinfo=timezone.utc)
        return cls(
            file_id=str(data["fileId"]),
            file_name=str(data["fileName"]),
            size=int(data.get("size", 0)),
            uploaded_at=uploaded_at,
        )


@dataclass(frozen=True)
class Balance:
    pipe: float
    sol: float
    public_key: str


@dataclass(frozen=True)
class PublicLink:
    share_url: str
    file_name: Optional[str] = None
