"""
Push notification schemas.
"""

from typing import Optional

from pydantic import BaseModel, Field


class AndroidOptions(BaseModel):
    """Presentation hints for Android devices."""

    icon: str = "ic_clock_reminder"
    color: str = "#2563EB"
    sound: str = "default"
    channel_id: str = "attendance_reminders"


class PushMessage(BaseModel):
    token: str
    title: str
    body: str
    data: dict[str, str] = {}
    android: Optional[AndroidOptions] = None

    def to_wire(self) -> dict:
        message = {
            "token": self.token,
            "notification": {"title": self.title, "body": self.body},
            # Data values must be strings on the wire
            "data": {key: str(value) for key, value in self.data.items()},
        }
        if self.android is not None:
            message["android"] = {
                "notification": {
                    "icon": self.android.icon,
                    "color": self.android.color,
                    "sound": self.android.sound,
                    "channelId": self.android.channel_id,
                }
            }
        return message


class DeliveryResult(BaseModel):
    delivered: bool
    message_id: Optional[str] = None
    error: Optional[str] = None


# Admin request schemas. Fields are optional so that missing values can be
# reported as a 400 with the service's own error body.


class ManualNotificationRequest(BaseModel):
    type: Optional[str] = None
    employeeId: Optional[str] = None
    title: Optional[str] = None
    body: Optional[str] = None

    def missing_fields(self) -> list[str]:
        return [
            name
            for name in ("type", "employeeId", "title", "body")
            if not getattr(self, name)
        ]


class BroadcastRequest(BaseModel):
    title: str = Field(min_length=1, max_length=255)
    body: str = Field(min_length=1, max_length=1000)
