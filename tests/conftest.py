import zipfile

import pytest
from unittest.mock import patch

from appboot.config import Configuration


@pytest.fixture
def yarn_env(tmp_path):
    return {
        "PWD": str(tmp_path),
        "NM_HOST": "node-1.cluster.local",
        "HADOOP_USER_NAME": "hadoop",
    }


@pytest.fixture
def empty_config():
    return Configuration()


@pytest.fixture
def make_archive(tmp_path):
    """Write a zip archive with an optional manifest and class entries."""

    def _make(name, manifest=None, classes=(), directory=None):
        directory = directory or tmp_path
        directory.mkdir(parents=True, exist_ok=True)
        path = directory / name
        with zipfile.ZipFile(path, "w") as zf:
            if manifest is not None:
                lines = ["Manifest-Version: 1.0"]
                lines.extend(f"{k}: {v}" for k, v in manifest.items())
                zf.writestr("META-INF/MANIFEST.MF", "\n".join(lines) + "\n\n")
            for class_name in classes:
                zf.writestr(class_name.replace(".", "/") + ".class", b"\xca\xfe\xba\xbe")
        return path

    return _make


@pytest.fixture(autouse=True)
def process_hooks(request):
    # Don't patch for the process hook tests themselves
    if "test_process" in request.module.__name__:
        yield None
        return

    with patch("appboot.bootstrap.register_signal_handlers") as signals, \
            patch("appboot.bootstrap.install_shutdown_safeguard") as safeguard:
        yield {"signals": signals, "safeguard": safeguard}
