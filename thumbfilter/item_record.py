"""
ItemRecord - Read-only snapshot of a repository item, its bundles and bitstreams.
"""

import json
from dataclasses import dataclass, field, asdict
from typing import List, Optional


THUMBNAIL_BUNDLE = "THUMBNAIL"


@dataclass
class Bitstream:
    """
    One stored file within a bundle.

    Attributes:
        name: File name, may be absent
        description: Free-text description, may be absent
    """
    name: Optional[str] = None
    description: Optional[str] = None

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> 'Bitstream':
        return cls(name=data.get('name'), description=data.get('description'))


@dataclass
class Bundle:
    """A named grouping of bitstreams (e.g. ORIGINAL, THUMBNAIL)."""
    name: str
    bitstreams: List[Bitstream] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            'name': self.name,
            'bitstreams': [b.to_dict() for b in self.bitstreams],
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'Bundle':
        return cls(
            name=data['name'],
            bitstreams=[Bitstream.from_dict(b) for b in data.get('bitstreams', [])],
        )


@dataclass
class Item:
    """
    A single archived object.

    Attributes:
        handle: Human-readable identifier used in diagnostics
        bundles: All bundles on the item; several may share a name
    """
    handle: Optional[str] = None
    bundles: List[Bundle] = field(default_factory=list)

    def get_bundles(self, name: str) -> List[Bundle]:
        """Get every bundle with the given name."""
        return [b for b in self.bundles if b.name == name]

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            'handle': self.handle,
            'bundles': [b.to_dict() for b in self.bundles],
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'Item':
        """Create from dictionary."""
        return cls(
            handle=data.get('handle'),
            bundles=[Bundle.from_dict(b) for b in data.get('bundles', [])],
        )

    @classmethod
    def load(cls, filepath: str) -> 'Item':
        """Load an item snapshot from a JSON file."""
        with open(filepath, 'r') as f:
            return cls.from_dict(json.load(f))
