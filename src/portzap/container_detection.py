"""
Container and namespace diagnostics for a PID.

Purely informational: the result is shown in verbose output and is never used
to allow or refuse a termination.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from typing import Dict, Optional, Tuple

logger = logging.getLogger(__name__)

CONTAINER_INDICATORS: Tuple[str, ...] = ("docker", "lxc", "kubepods", "containerd", "crio")
NAMESPACE_TYPES: Tuple[str, ...] = ("mnt", "pid", "net", "uts", "ipc", "user", "cgroup")


@dataclass(frozen=True)
class ContainerInfo:
    in_container: bool
    indicator: Optional[str] = None
    namespaces: Dict[str, str] = field(default_factory=dict)


def _read_text(path: str) -> str:
    try:
        with open(path, encoding="utf-8") as handle:
            return handle.read()
    except OSError:  # policy_guard: allow-silent-handler
        return ""


def namespace_id(pid: int, ns_type: str) -> str:
    """Inode part of ``/proc/PID/ns/TYPE`` (``mnt:[4026531840]``), or "" when unreadable."""
    try:
        target = os.readlink(f"/proc/{pid}/ns/{ns_type}")
    except OSError:  # policy_guard: allow-silent-handler
        return ""
    _, sep, inode = target.partition(":")
    return inode if sep else ""


def namespace_info(pid: int) -> Dict[str, str]:
    info = {}
    for ns_type in NAMESPACE_TYPES:
        value = namespace_id(pid, ns_type)
        if value:
            info[ns_type] = value
    return info


def in_separate_mount_namespace(pid: int) -> bool:
    own = namespace_id(pid, "mnt")
    init = namespace_id(1, "mnt")
    if not own or not init:
        return False
    return own != init


def detect_container(pid: int) -> ContainerInfo:
    if pid <= 0:
        return ContainerInfo(False)

    cgroup = _read_text(f"/proc/{pid}/cgroup")
    for indicator in CONTAINER_INDICATORS:
        if indicator in cgroup:
            return ContainerInfo(True, indicator, namespace_info(pid))

    if in_separate_mount_namespace(pid):
        return ContainerInfo(True, "mount namespace", namespace_info(pid))
    return ContainerInfo(False)


def describe_container(pid: int) -> str:
    """One-line verbose annotation, empty when the PID is not containerised."""
    info = detect_container(pid)
    if not info.in_container:
        return ""
    return f"PID {pid} appears to run inside a container ({info.indicator})"


__all__ = [
    "CONTAINER_INDICATORS",
    "ContainerInfo",
    "describe_container",
    "detect_container",
    "in_separate_mount_namespace",
    "namespace_info",
]
