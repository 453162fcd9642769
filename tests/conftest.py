import os
from pathlib import Path

# meetrelay.settings reads config.json at import; point it at the repo copy.
os.environ.setdefault("MEETRELAY_CONFIG", str(Path(__file__).resolve().parent.parent / "config.json"))
