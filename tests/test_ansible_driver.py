import json
import os
import subprocess
from unittest.mock import patch

import pytest

from burnin.core.errors import PlaybookError
from burnin.services.ansible_driver import AnsibleDriver, build_args, build_vars


def completed(returncode=0, stdout="PLAY RECAP", stderr=""):
    return subprocess.CompletedProcess(args=[], returncode=returncode, stdout=stdout, stderr=stderr)


def test_vars_for_local_run_with_wipe():
    assert build_vars("localhost", "https://x/polkadot", True, "kusama-burnin-1", None) == {
        "inventory_hostname": "kusama-burnin-1",
        "node_public_name": "kusama-burnin-1",
        "node_binary": "https://x/polkadot",
        "node_custom_options": [],
        "node_force_wipe": True,
    }


def test_vars_for_remote_run_without_binary():
    extra_vars = build_vars("kusama-burnin-1.foo-chains.example.com", None, False, "kusama-burnin-1", ["--a"])

    assert "inventory_hostname" not in extra_vars
    assert "node_binary" not in extra_vars
    assert "node_force_wipe" not in extra_vars
    assert extra_vars["node_custom_options"] == ["--a"]


def test_args_for_local_and_remote_runs():
    local = build_args("kusama-nodes.yml", "localhost", None, False, "kusama-burnin-1", None)
    remote = build_args("kusama-nodes.yml", "kusama-burnin-1.foo-chains.example.com", None, False, "kusama-burnin-1", None)

    assert local[:6] == ["kusama-nodes.yml", "-i", "inventory.yaml", "-l", "kusama-burnin-1", "--connection=local"]
    assert remote[5:7] == ["-u", "gitlab"]
    assert remote[-2] == "-e"
    assert json.loads(remote[-1])["node_public_name"] == "kusama-burnin-1"


def test_run_playbook_invokes_ansible_in_playbook_dir():
    driver = AnsibleDriver("/builds/burn-in", debug_level=2)

    with patch("burnin.services.ansible_driver.subprocess.run", return_value=completed()) as run:
        driver.run_playbook("kusama-nodes.yml", "localhost", "https://x/polkadot", False, "kusama-burnin-1", None)

    cmd = run.call_args.args[0]
    assert cmd[0] == "ansible-playbook"
    assert cmd[1] == "kusama-nodes.yml"
    assert cmd[-2:] == ["--diff", "-vvvv"]
    assert run.call_args.kwargs["cwd"] == os.path.join("/builds/burn-in", ".maintain", "ansible")


@pytest.mark.parametrize("result", [
    completed(returncode=2),
    completed(stdout="[WARNING]: Could not match supplied host pattern\nno hosts matched"),
    completed(stderr="[WARNING]: provided hosts list is empty"),
])
def test_run_playbook_failures(result):
    driver = AnsibleDriver("/builds/burn-in", debug_level=0)

    with patch("burnin.services.ansible_driver.subprocess.run", return_value=result):
        with pytest.raises(PlaybookError, match="ansible-playbook kusama-nodes.yml failed"):
            driver.run_playbook("kusama-nodes.yml", "localhost", None, False, "kusama-burnin-1", None)


def test_missing_ansible_binary():
    driver = AnsibleDriver("/builds/burn-in", debug_level=0)

    with patch("burnin.services.ansible_driver.subprocess.run", side_effect=FileNotFoundError("ansible-playbook")):
        with pytest.raises(PlaybookError, match="failed to run ansible-playbook"):
            driver.run_playbook("kusama-nodes.yml", "localhost", None, False, "kusama-burnin-1", None)
