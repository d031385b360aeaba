from __future__ import annotations

import zlib
from dataclasses import dataclass

PALETTE: tuple[str, ...] = (
    "#FF6B6B",
    "#4ECDC4",
    "#45B7D1",
    "#FFA07A",
    "#98D8C8",
    "#F7DC6F",
    "#BB8FCE",
    "#85C1E2",
    "#F8B739",
    "#52B788",
)


@dataclass(frozen=True, slots=True)
class Avatar:
    initial: str
    color: str

    @classmethod
    def for_name(cls, name: str) -> Avatar:
        """Derive the avatar from a display name.

        CRC-32 is used instead of ``hash()`` so the colour is the same in
        every process regardless of ``PYTHONHASHSEED``.
        """
        index = zlib.crc32(name.encode("utf-8")) % len(PALETTE)
        return cls(initial=name[:1].upper(), color=PALETTE[index])

    def to_dict(self) -> dict[str, str]:
        return {"initial": self.initial, "color": self.color}
