from __future__ import annotations

import os
from pathlib import Path


class Route:
    def __init__(self):
        mainpath = Path(__file__)
        override = os.environ.get("EMEBRIDGE_CONFIG")
        self.default_YAML_path: Path = mainpath.parent.parent.joinpath("bridgeconfig.yaml")
        self.YAML_path: Path = Path(override) if override else self.default_YAML_path
