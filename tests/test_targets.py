from __future__ import annotations

from pathlib import Path

import allure
import pytest

from ci_exec.errors import UnknownTargetError, UsageError
from ci_exec.targets import Target, TargetStore, TargetToken

pytestmark = [
    allure.epic("Configuration"),
    allure.feature("Targets"),
]

RC_FILE = """
targets:
  main:
    api: https://ci.example.com/
    insecure: true
    token:
      type: Bearer
      value: some-token
  anonymous:
    api: http://localhost:8080
"""


def test_saved_targets_are_resolved_by_name(tmp_path: Path) -> None:
    rc_path = tmp_path / "rc.yml"
    rc_path.write_text(RC_FILE, "utf-8")

    store = TargetStore.load(rc_path)

    assert store.resolve("main") == Target(
        api="https://ci.example.com",
        token=TargetToken(type="Bearer", value="some-token"),
        insecure=True,
    )
    assert store.resolve("main").authorization == "Bearer some-token"
    assert store.resolve("anonymous").authorization is None


def test_urls_are_used_directly(tmp_path: Path) -> None:
    store = TargetStore.load(tmp_path / "missing")

    assert store.resolve("http://ci.example.com/") == Target(api="http://ci.example.com")


@pytest.mark.parametrize("name", ["nope", "ci.example.com", "ftp://ci.example.com"])
def test_unknown_targets_are_usage_errors(name: str) -> None:
    with pytest.raises(UnknownTargetError, match="unknown target"):
        TargetStore().resolve(name)


@pytest.mark.parametrize(
    "content",
    ["- just\n- a list\n", "targets: [main]\n", "targets:\n  main:\n    insecure: true\n"],
)
def test_malformed_rc_files_are_rejected(tmp_path: Path, content: str) -> None:
    rc_path = tmp_path / "rc.yml"
    rc_path.write_text(content, "utf-8")

    with pytest.raises(UsageError):
        TargetStore.load(rc_path)
