import json
import os
from pathlib import Path
from typing import List, Union


def read_yaml(path: Union[str, Path]) -> dict:
    import yaml
    with open(path, "r", encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


def write_json(path, obj):
    Path(path).parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(obj, f, ensure_ascii=False, indent=2)


def discover_text_files(root: Union[str, Path], suffix: str = ".txt") -> List[Path]:
    """All regular files below `root` ending with `suffix`, sorted; hidden entries and partial outputs skipped."""
    root = Path(root)
    if not root.is_dir():
        raise FileNotFoundError(f"input directory does not exist: {root}")
    out = []
    for dirpath, dirnames, filenames in os.walk(root):
        dirnames[:] = [d for d in dirnames if not d.startswith(".")]
        for fn in filenames:
            if fn.startswith(".") or fn.endswith(".part"):
                continue
            if fn.endswith(suffix):
                out.append(Path(dirpath) / fn)
    return sorted(out)
