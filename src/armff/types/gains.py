# Copyright (C) 2025 Gil Benezer
#
# This program is free software: you can redistribute it and/or modify
# it under the terms of the GNU Affero General Public License as published
# by the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.
#
# This program is distributed in the hope that it will be useful,
# but WITHOUT ANY WARRANTY; without even the implied warranty of
# MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the
# GNU Affero General Public License for more details.
#
# You should have received a copy of the GNU Affero General Public License
# along with this program.  If not, see <https://www.gnu.org/licenses/>.

"""
Feedforward Gains

Immutable record holding the four arm feedforward gains:

- ks : static friction voltage [V], applied with the sign of velocity
- kg : gravity compensation voltage [V], scaled by cos(θ)
- kv : velocity gain [V/(rad/s)], must be non-negative
- ka : acceleration gain [V/(rad/s²)], must be non-negative

The field order (ks, kg, kv, ka) is stable and exposed through
``FeedforwardGains.FIELDS`` so that external serializers can read and
write the gains without touching model internals.

Examples
--------
>>> gains = FeedforwardGains(ks=0.1, kg=0.5, kv=1.2, ka=0.05)
>>> gains.to_dict()
{'ks': 0.1, 'kg': 0.5, 'kv': 1.2, 'ka': 0.05}
>>> FeedforwardGains.from_dict(gains.to_dict()) == gains
True
>>> FeedforwardGains(ks=0.0, kg=0.0, kv=-1.0)
Traceback (most recent call last):
    ...
ValueError: kv must be a non-negative number, got -1.0!
"""

from dataclasses import dataclass
from typing import ClassVar, Dict, Mapping, Tuple

from .core import ScalarLike


@dataclass(frozen=True)
class FeedforwardGains:
    """
    Frozen set of arm feedforward gains.

    Parameters
    ----------
    ks : float
        Static gain [V]. Any sign.
    kg : float
        Gravity gain [V]. Any sign.
    kv : float
        Velocity gain [V/(rad/s)]. Must be >= 0.
    ka : float, default=0.0
        Acceleration gain [V/(rad/s²)]. Must be >= 0.

    Raises
    ------
    ValueError
        If kv or ka is negative. The message names the gain and its value.
    """

    FIELDS: ClassVar[Tuple[str, ...]] = ("ks", "kg", "kv", "ka")

    ks: float
    kg: float
    kv: float
    ka: float = 0.0

    def __post_init__(self):
        # Normalize NumPy scalars and ints to plain floats
        for name in self.FIELDS:
            object.__setattr__(self, name, float(getattr(self, name)))

        if self.kv < 0.0:
            raise ValueError(f"kv must be a non-negative number, got {self.kv}!")
        if self.ka < 0.0:
            raise ValueError(f"ka must be a non-negative number, got {self.ka}!")

    def as_tuple(self) -> Tuple[float, float, float, float]:
        """Gains in field order (ks, kg, kv, ka)."""
        return (self.ks, self.kg, self.kv, self.ka)

    def to_dict(self) -> Dict[str, float]:
        """Gains keyed by field name, in field order."""
        return {name: getattr(self, name) for name in self.FIELDS}

    @classmethod
    def from_dict(cls, data: Mapping[str, ScalarLike]) -> "FeedforwardGains":
        """
        Build gains from a mapping keyed by field name.

        ``ka`` may be omitted (defaults to 0). Any other missing key, or any
        key that is not a gain name, raises ValueError.
        """
        unknown = set(data) - set(cls.FIELDS)
        if unknown:
            raise ValueError(
                f"Unknown gain field(s) {sorted(unknown)}. Expected a subset of {list(cls.FIELDS)}"
            )

        missing = [name for name in ("ks", "kg", "kv") if name not in data]
        if missing:
            raise ValueError(f"Missing required gain field(s) {missing}")

        return cls(**{name: data[name] for name in cls.FIELDS if name in data})


__all__ = ["FeedforwardGains"]
