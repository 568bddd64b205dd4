"""Publication statuses and the live/dev visibility rules."""

from enum import Enum, IntEnum

from strata.core.errors import ValidationError


class Mode(str, Enum):
    """Who is looking: anonymous visitors (live) or editors previewing (dev)."""

    LIVE = "live"
    DEV = "dev"


class Status(IntEnum):
    """Status of a page version, ordered from least to most public."""

    DRAFT = 1
    REVIEWED = 50
    PUBLISHED = 100
    HIDDEN = 101

    def is_visible(self, mode: Mode | str) -> bool:
        """Published content is visible everywhere, everything is visible in dev mode."""
        return self is Status.PUBLISHED or Mode(mode) is Mode.DEV

    @property
    def promotes_live(self) -> bool:
        """Whether saving with this status overwrites the live-visible fields."""
        return self is not Status.DRAFT

    @classmethod
    def parse(cls, value: "Status | int | str") -> "Status":
        """Coerce a status, its integer value, or its name into a Status."""
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            try:
                return cls[value.strip().upper()]
            except KeyError:
                raise ValidationError(f"Unknown status: {value!r}", field="status") from None
        try:
            return cls(value)
        except ValueError:
            raise ValidationError(f"Unknown status: {value!r}", field="status") from None
