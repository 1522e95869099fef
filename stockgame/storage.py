import json
import logging
import os
import tempfile

logger = logging.getLogger(__name__)


class JsonFileStore:
    """String key-value store persisted as one JSON file.

    Plays the part of browser local storage: values are text and every
    write goes straight to disk. Writes land in a temporary file that
    replaces the real one, so a write cut short leaves the previous
    contents intact.
    """

    def __init__(self, path):
        self.path = path
        self._data = {}
        self._load()

    def _load(self):
        if not os.path.exists(self.path):
            return
        try:
            with open(self.path, 'r') as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            logger.warning("Could not read %s, starting empty: %s", self.path, e)
            return
        if not isinstance(data, dict):
            logger.warning("Ignoring %s: expected an object, got %s", self.path, type(data).__name__)
            return
        self._data = {str(k): str(v) for k, v in data.items()}

    def _flush(self):
        directory = os.path.dirname(os.path.abspath(self.path))
        tmp_path = None
        try:
            fd, tmp_path = tempfile.mkstemp(prefix='.stockgame-', suffix='.tmp', dir=directory)
            with os.fdopen(fd, 'w') as f:
                json.dump(self._data, f, indent=2)
            os.replace(tmp_path, self.path)
        except OSError as e:
            logger.warning("Could not save %s: %s", self.path, e)
            if tmp_path is not None and os.path.exists(tmp_path):
                os.remove(tmp_path)

    def get(self, key, default=None):
        return self._data.get(key, default)

    def set(self, key, value):
        self._data[key] = str(value)
        self._flush()

    def remove(self, key):
        if self._data.pop(key, None) is not None:
            self._flush()

    def __contains__(self, key):
        return key in self._data
