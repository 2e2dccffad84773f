# padchat/storage/padfile.py
from pathlib import Path

from padchat.core.pad import OneTimePad
from padchat.core.serialization import pad_from_json, pad_to_json

# Placeholder to be replaced by a number unique among the pads a group shares
DEFAULT_PAD_NAME = "otp-XXX.json"


def save_pad(pad: OneTimePad, path: str | Path, overwrite: bool = False) -> Path:
    """Write the pad as JSON. Refuses to replace an existing file unless `overwrite` is set."""
    path = Path(path)
    if path.exists() and not overwrite:
        raise FileExistsError(f'Target file "{path}" already exists')
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(pad_to_json(pad), encoding="utf-8")
    return path


def load_pad(path: str | Path) -> OneTimePad:
    return pad_from_json(Path(path).read_text(encoding="utf-8"))
