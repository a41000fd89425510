# bikeshare/scenarios/base.py
from dataclasses import dataclass, field
from pathlib import Path


@dataclass
class Scenario:
    name: str
    state_csv: Path
    bucket_minutes: int
    meta: dict = field(default_factory=dict)
