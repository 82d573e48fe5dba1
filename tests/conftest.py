import logging
import os
from pathlib import Path
from typing import Callable

import pytest

from cvatmask.core.config import get_settings

SAMPLE_XML = """<?xml version="1.0" encoding="utf-8"?>
<annotations>
  <version>1.1</version>
  <meta>
    <task>
      <name>sample</name>
      <labels>
        <label><name>car</name><color>#ff0000</color></label>
        <label><name>road</name><color>#00ff00</color></label>
        <label><name>sign</name><color>#0000ff</color></label>
      </labels>
    </task>
  </meta>
  <image id="0" name="frame_000.jpg" width="20" height="20">
    <box label="car" xtl="2.00" ytl="3.00" xbr="12.00" ybr="8.00" occluded="0"></box>
    <polygon label="road" points="0.00,15.00;19.00,15.00;19.00,19.00;0.00,19.00" occluded="0"></polygon>
    <points label="sign" points="1.00,1.00;18.00,1.00" occluded="0"></points>
  </image>
  <image id="1" name="frame_001.jpg" width="16" height="12">
    <polygon label="car" group_id="1" points="0,0;4,0;4,4;0,4"></polygon>
    <box label="car" group_id="1" xtl="8" ytl="8" xbr="12" ybr="11"></box>
    <polyline label="road" points="0,6;15,6"></polyline>
    <ellipse label="car" cx="12" cy="3" rx="2" ry="1" rotation="30.0"></ellipse>
  </image>
</annotations>
"""


@pytest.fixture
def write_xml(tmp_path: Path) -> Callable[[str], Path]:
    """Return a helper writing XML text to a file under ``tmp_path``."""

    def _write(text: str, name: str = "annotations.xml") -> Path:
        path = tmp_path / name
        path.write_text(text, encoding="utf-8")
        return path

    return _write


@pytest.fixture
def sample_xml(write_xml: Callable[[str], Path]) -> Path:
    return write_xml(SAMPLE_XML)


@pytest.fixture(autouse=True)
def _isolated_settings(monkeypatch: pytest.MonkeyPatch, tmp_path: Path):
    """Keep environment variables and cached settings from leaking between tests."""
    for name in list(os.environ):
        if name.upper().startswith("CVATMASK_"):
            monkeypatch.delenv(name)
    monkeypatch.chdir(tmp_path)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture(autouse=True)
def _restore_root_logging():
    """Undo handler and level changes made by ``configure_logging``."""
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)
