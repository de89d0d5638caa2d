from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class Directive:
    """A single checkbox line naming a label and whether it should be applied.

    Two directives are equal when their names match (case-sensitive); the
    ``checked`` flag does not take part in equality or hashing.
    """

    name: str
    checked: bool = field(compare=False)

    def as_dict(self) -> dict[str, object]:
        return {"name": self.name, "checked": self.checked}


__all__ = ["Directive"]
