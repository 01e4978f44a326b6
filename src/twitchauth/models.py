from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class AuthorizedUser:
    """Profile of the signed-in Twitch user as returned by `GET /user`.

    Every field defaults to an empty string so a partially filled payload
    still decodes; the all-empty record means "nobody signed in yet".
    """

    id: str = field(default="", metadata={"json_key": "_id"})
    logo: str = ""
    display_name: str = ""
    name: str = ""
    bio: str = ""
    email: str = ""

    @property
    def is_empty(self) -> bool:
        return self == AuthorizedUser()
