from tqdm.auto import tqdm
import os
import json
import psutil
import matplotlib.pyplot as plt
from pathlib import Path
from typing import Optional


def ensure_dir(directory):
    Path(directory).mkdir(parents=True, exist_ok=True)


def _get_extension(name: str) -> str:
    """Extract file extension from filename, default to 'json' if missing."""
    ext = os.path.splitext(name)[1].lstrip('.')
    return ext if ext else 'json'


def savify(obj, name: str, destination: str):
    """
    Save object to structured destination.

    - Figures → destination/graphs/
    - Dicts, lists (session snapshots, annotations) → destination/settings/

    Parameters:
        obj: matplotlib figure or JSON-serialisable object
        name: filename with or without extension (e.g. 'P12345.json', 'trial_0.png')
        destination: root folder (e.g. '~/Documents/EEG/...')

    Returns:
        Path of the written file
    """
    destination = Path(destination).expanduser()
    ext = _get_extension(name)
    if '.' not in name:
        name += f".{ext}"

    if isinstance(obj, plt.Figure):
        subfolder = destination / "graphs"
    else:
        subfolder = destination / "settings"

    full_path = subfolder / name
    ensure_dir(subfolder)

    if isinstance(obj, plt.Figure):
        obj.savefig(full_path)
        plt.close(obj)
    elif ext == "json":
        with open(full_path, 'w') as f:
            json.dump(obj, f, indent=2)
    else:
        raise ValueError(f"Unsupported file extension: {ext}")

    print(f"Saved to {full_path}")
    return full_path


def loadify(name: str, location: str, obj_type: Optional[str] = None):
    """
    Load a JSON object from location.

    Parameters:
        name: filename with extension (e.g. 'P12345.json')
        location: root folder (e.g. '~/Documents/EEG/...')
        obj_type: one of ['graph', 'settings'] or None

    Returns:
        Loaded object
    """
    location = Path(location).expanduser()
    subdir = {
        'graph': location / "graphs",
        'settings': location / "settings",
    }.get(obj_type, location)

    full_path = subdir / name
    if not full_path.exists():
        raise FileNotFoundError(f"File not found: {full_path}")

    ext = _get_extension(name)
    if ext == "json":
        with open(full_path, 'r') as f:
            return json.load(f)
    else:
        raise ValueError(f"Unsupported file extension: {ext}")


class DirectoryStore:
    """Lightweight session snapshots as <key>.json under root/settings."""
    def __init__(self, root):
        self.root = Path(root).expanduser()

    def save(self, key: str, snapshot: dict):
        return savify(snapshot, f"{key}.json", self.root)

    def load(self, key: str) -> Optional[dict]:
        try:
            return loadify(f"{key}.json", self.root, obj_type='settings')
        except FileNotFoundError:
            return None


class MemoryStore:
    """Key-indexed in-process store; keeps its own copy of each snapshot."""
    def __init__(self):
        self.records = {}

    def save(self, key: str, snapshot: dict):
        self.records[key] = json.loads(json.dumps(snapshot))

    def load(self, key: str) -> Optional[dict]:
        record = self.records.get(key)
        return json.loads(json.dumps(record)) if record is not None else None


class TqdmProgressBar:
    """
    Custom tqdm wrapper that shows memory usage and tracks the last processed item.
    """
    def __init__(self):
        self.last_file = None

    def run(self, iterable, label, func):
        with tqdm(
                iterable,
                desc=label,
                bar_format="{l_bar}{bar} {n_fmt}/{total_fmt} [{rate_fmt}{postfix}]"
        ) as progress:
            for item in progress:
                mem = psutil.Process(os.getpid()).memory_info().rss / 1024**2
                progress.set_postfix({
                    "Last": " " + str(self.last_file or '–')[:18],
                    "Memory": f" {mem:.1f}MB"
                })
                func(item)
                self.last_file = str(item)
