from dataclasses import dataclass


@dataclass
class League:
    id: str
    name: str
    code: str
    members: int = 0

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "code": self.code,
            "members": self.members,
        }

    @classmethod
    def from_dict(cls, data):
        return cls(
            id=str(data["id"]),
            name=data.get("name", ""),
            code=data["code"],
            members=int(data.get("members") or 0),
        )
