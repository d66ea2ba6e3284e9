from __future__ import annotations

"""Subprocess helpers with wall-clock timeouts and process-tree termination.

- No shell=True (security)
- Child runs in its own session / process group
- On timeout the whole process tree is killed and stdout/stderr are drained
"""

import logging
import os
import shlex
import subprocess
from pathlib import Path
from typing import Any, Dict, MutableMapping, Optional, Sequence

import psutil

logger = logging.getLogger(__name__)


def _flatten_cmd(cmd: Any) -> list[str]:
    if isinstance(cmd, (list, tuple)):
        return [str(p) for p in cmd]
    return shlex.split(str(cmd))


def _popen_process_group_kwargs() -> Dict[str, Any]:
    if os.name == "posix":
        return {"start_new_session": True}
    if os.name == "nt":
        creationflags = getattr(subprocess, "CREATE_NEW_PROCESS_GROUP", None)
        if isinstance(creationflags, int):
            return {"creationflags": creationflags}
    return {}


def terminate_process_tree(pid: int, *, grace_seconds: float = 0.2) -> list[int]:
    """Kill ``pid`` and all of its descendants.

    Children are signalled before the parent so nothing gets re-parented
    and left running. Returns the PIDs that were signalled.
    """
    try:
        parent = psutil.Process(pid)
    except psutil.NoSuchProcess:
        return []

    try:
        children = parent.children(recursive=True)
    except psutil.Error:
        children = []

    victims = [*children, parent]
    for proc in victims:
        try:
            proc.terminate()
        except psutil.NoSuchProcess:
            continue
        except psutil.AccessDenied:
            logger.debug("Access denied terminating pid %s", proc.pid)

    _gone, alive = psutil.wait_procs(victims, timeout=grace_seconds)
    for proc in alive:
        try:
            proc.kill()
        except psutil.NoSuchProcess:
            continue
        except psutil.AccessDenied:
            logger.debug("Access denied killing pid %s", proc.pid)
    if alive:
        psutil.wait_procs(alive, timeout=grace_seconds)
    return [p.pid for p in victims]


def run_with_timeout(
    cmd: Sequence[str] | str,
    *,
    timeout: float,
    cwd: Optional[Path | str] = None,
    env: Optional[MutableMapping[str, str]] = None,
    input: Optional[str] = None,
    text: bool = True,
) -> subprocess.CompletedProcess:
    """Run ``cmd`` capturing stdout/stderr, bounded by ``timeout`` seconds.

    Args:
        cmd: Command list/str (str is parsed with :mod:`shlex`, never a shell)
        timeout: Wall-clock limit in seconds
        cwd: Working directory
        env: Environment variables
        input: Optional stdin payload
        text: Decode output as text

    Returns:
        CompletedProcess with captured output.

    Raises:
        subprocess.TimeoutExpired: When the command exceeds ``timeout``. The
            process tree has already been killed and whatever output it
            produced is attached to the exception.
        FileNotFoundError: When the executable does not exist.
    """
    argv = _flatten_cmd(cmd)
    proc = subprocess.Popen(
        argv,
        cwd=str(cwd) if cwd is not None else None,
        env=dict(env) if env is not None else None,
        stdin=subprocess.PIPE if input is not None else subprocess.DEVNULL,
        stdout=subprocess.PIPE,
        stderr=subprocess.PIPE,
        text=text,
        **_popen_process_group_kwargs(),
    )
    try:
        stdout, stderr = proc.communicate(input=input, timeout=timeout)
    except subprocess.TimeoutExpired as exc:
        logger.warning("Command timed out after %ss: %s", timeout, argv[0] if argv else "<empty>")
        terminate_process_tree(proc.pid)
        try:
            # Drain pipes so the child can't block on a full buffer.
            stdout, stderr = proc.communicate(timeout=1.0)
        except subprocess.TimeoutExpired:
            proc.kill()
            stdout, stderr = proc.communicate()
        raise subprocess.TimeoutExpired(argv, timeout, output=stdout or exc.output, stderr=stderr or exc.stderr) from None

    return subprocess.CompletedProcess(
        argv,
        proc.returncode if proc.returncode is not None else 0,
        stdout=stdout,
        stderr=stderr,
    )


__all__ = ["run_with_timeout", "terminate_process_tree"]
