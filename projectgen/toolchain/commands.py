"""
External process runner used by the compiler and package manager
"""

import asyncio
import functools
import logging
import subprocess
import time
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Union

logger = logging.getLogger(__name__)

# Conventional shell exit codes
COMMAND_NOT_FOUND = 127
COMMAND_TIMED_OUT = 124


@dataclass
class CommandResult:
    """Outcome of one external command"""
    command: List[str]
    returncode: int
    stdout: str = ""
    stderr: str = ""
    duration: float = 0.0

    @property
    def ok(self) -> bool:
        return self.returncode == 0

    def failure_message(self) -> str:
        """Best description of a failure: stderr, else stdout, else the exit status"""
        if self.stderr.strip():
            return self.stderr.strip()
        if self.stdout.strip():
            return self.stdout.strip()
        return f"Command '{' '.join(self.command)}' failed with exit code {self.returncode}"


def _run(command: List[str], cwd: str, timeout: Optional[float]) -> CommandResult:
    start = time.time()
    try:
        result = subprocess.run(
            command,
            cwd=cwd,
            capture_output=True,
            text=True,
            timeout=timeout
        )
    except FileNotFoundError as e:
        return CommandResult(command, COMMAND_NOT_FOUND, stderr=f"Command not found: {command[0]} ({e})",
                             duration=time.time() - start)
    except subprocess.TimeoutExpired:
        return CommandResult(command, COMMAND_TIMED_OUT, stderr=f"Command timed out after {timeout}s",
                             duration=time.time() - start)
    return CommandResult(command, result.returncode, result.stdout or "", result.stderr or "",
                         duration=time.time() - start)


async def run_command(command: List[str], cwd: Union[str, Path], timeout: Optional[float] = None) -> CommandResult:
    """Run a command inside ``cwd`` without blocking the event loop"""
    logger.debug(f"⚙️ Running {' '.join(command)} in {cwd}")
    loop = asyncio.get_running_loop()
    result = await loop.run_in_executor(None, functools.partial(_run, list(command), str(cwd), timeout))
    if result.ok:
        logger.debug(f"✅ {' '.join(command)} finished in {result.duration:.1f}s")
    else:
        logger.debug(f"❌ {' '.join(command)} exited with {result.returncode}")
    return result
