"""
Ansible Driver
==============
Runs the node playbooks shipped in <base directory>/.maintain/ansible.

Invocation:
    ansible-playbook <playbook> -i inventory.yaml -l <node public name>
        --connection=local          (run_on == "localhost")
        -u gitlab                   (any other host, over SSH)
        -e '<json vars>'

Extra Vars:
    inventory_hostname   — only when running on localhost
    node_public_name     — hostname the node reports to telemetry
    node_binary          — URL of the node binary, omitted when unset
    node_custom_options  — extra CLI flags, [] when unset
    node_force_wipe      — only present when the chain db is wiped

A run fails on a non-zero exit code, on "no hosts matched" in stdout, or on
any "[WARNING]" in stderr.
"""
import json
import logging
import os
import shlex
import subprocess
from typing import Any, Dict, List, Optional

from burnin.core import config
from burnin.core.errors import PlaybookError

logger = logging.getLogger(__name__)

ANSIBLE_SUBDIR = os.path.join(".maintain", "ansible")
LOCALHOST = "localhost"


def build_vars(
    run_on: str,
    node_binary: Optional[str],
    wipe_chain_db: bool,
    node_public_name: str,
    custom_options: Optional[List[str]],
) -> Dict[str, Any]:
    extra_vars: Dict[str, Any] = {}
    if run_on == LOCALHOST:
        extra_vars["inventory_hostname"] = node_public_name
    extra_vars["node_public_name"] = node_public_name
    if node_binary:
        extra_vars["node_binary"] = node_binary
    extra_vars["node_custom_options"] = list(custom_options or [])
    if wipe_chain_db:
        extra_vars["node_force_wipe"] = True
    return extra_vars


def build_args(
    playbook: str,
    run_on: str,
    node_binary: Optional[str],
    wipe_chain_db: bool,
    node_public_name: str,
    custom_options: Optional[List[str]],
) -> List[str]:
    args = [playbook, "-i", "inventory.yaml", "-l", node_public_name]
    if run_on == LOCALHOST:
        args.append("--connection=local")
    else:
        args.extend(["-u", "gitlab"])

    extra_vars = build_vars(run_on, node_binary, wipe_chain_db, node_public_name, custom_options)
    args.extend(["-e", json.dumps(extra_vars)])
    return args


class AnsibleDriver:
    def __init__(self, base_directory: str, debug_level: Optional[int] = None) -> None:
        self.path = os.path.join(base_directory, ANSIBLE_SUBDIR)
        level = config.DEBUG_ANSIBLE if debug_level is None else debug_level
        self.debug = level > 0
        self.verbose = level > 1

    def run_playbook(
        self,
        name: str,
        run_on: str,
        node_binary: Optional[str],
        wipe_chain_db: bool,
        node_public_name: str,
        custom_options: Optional[List[str]],
    ) -> None:
        args = build_args(name, run_on, node_binary, wipe_chain_db, node_public_name, custom_options)
        if self.debug:
            args.append("--diff")
        if self.verbose:
            args.append("-vvvv")

        cmd = ["ansible-playbook", *args]
        logger.info(shlex.join(cmd))

        try:
            result = subprocess.run(cmd, cwd=self.path, capture_output=True, text=True)
        except OSError as e:
            raise PlaybookError(f"failed to run ansible-playbook: {e}") from e

        if (
            result.returncode != 0
            or "no hosts matched" in result.stdout
            or "[WARNING]" in result.stderr
        ):
            raise PlaybookError(
                f"ansible-playbook {name} failed (exit code {result.returncode})\n"
                f"stdout: {result.stdout}\nstderr: {result.stderr}"
            )

        if self.debug:
            logger.debug("stdout: %s", result.stdout)
            logger.debug("stderr: %s", result.stderr)
