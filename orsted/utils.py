# /*
# Copyright 2026 The Orsted Authors.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
# */

"""Utility functions for command execution, command checks, and host address templating."""

from __future__ import annotations

import shlex
import shutil
import socket
from dataclasses import dataclass

import sh

from orsted import logger
from orsted.constants import HOST_ADDRESS_PLACEHOLDER, HOST_PROBE_ADDRESS
from orsted.errors import CommandError

# Shell convention for "command not found / not executable".
LAUNCH_FAILURE_EXIT_CODE = 127


@dataclass(frozen=True)
class CommandResult:
    """Outcome of an external command.

    Attributes:
        program: Program name that was executed.
        args: Argument vector passed to the program.
        output: Combined stdout and stderr text.
        exit_code: Process exit status, or 127 if the program could not be launched.
    """

    program: str
    args: tuple[str, ...]
    output: str
    exit_code: int

    @property
    def ok(self) -> bool:
        return self.exit_code == 0

    @property
    def command_line(self) -> str:
        return shlex.join([self.program, *self.args])

    def check(self) -> CommandResult:
        """Raise CommandError unless the command succeeded.

        Returns:
            The result itself, for chaining.

        Raises:
            CommandError: If the exit code is non-zero.
        """
        if not self.ok:
            raise CommandError(self.command_line, self.exit_code, self.output)
        return self


def run_command(program: str, *args: str) -> CommandResult:
    """Run an external command synchronously with stderr merged into stdout.

    No timeout is applied; the process inherits the caller's working
    directory and environment.

    Args:
        program: Program name or path.
        *args: Arguments passed to the program.

    Returns:
        CommandResult carrying the combined output and exit status.
    """
    logger.debug("Running: %s", shlex.join([program, *args]))
    try:
        cmd = sh.Command(program)
        output = cmd(*args, _err_to_out=True, _tty_out=False)
        return CommandResult(program, args, str(output), 0)
    except sh.ErrorReturnCode as err:
        return CommandResult(program, args, err.stdout.decode(errors="replace"), err.exit_code)
    except (sh.CommandNotFound, OSError) as err:
        return CommandResult(program, args, str(err), LAUNCH_FAILURE_EXIT_CODE)


def require_command(cmd: str) -> None:
    """Check if a command exists on the system PATH.

    Args:
        cmd: Name of the CLI command to check.

    Raises:
        RuntimeError: If the command is not found.
    """
    if shutil.which(cmd) is None:
        raise RuntimeError(f"Required command '{cmd}' not found. Please install it first.")


def discover_host_address() -> str:
    """Return the IP of the interface that carries the default route.

    Connecting a UDP socket sends no packets; it only makes the kernel pick
    the outbound source address.

    Raises:
        OSError: If no route to the probe address exists.
    """
    with socket.socket(socket.AF_INET, socket.SOCK_DGRAM) as sock:
        sock.connect(HOST_PROBE_ADDRESS)
        return sock.getsockname()[0]


def render_values(template: str, host_address: str) -> str:
    """Substitute the host address into a chart values payload.

    Args:
        template: Raw values YAML containing the host placeholder.
        host_address: Address to advertise, e.g. ``10.0.0.5``.

    Returns:
        The payload with every placeholder replaced.

    Raises:
        ValueError: If the template has no placeholder or the address is empty.
    """
    if not host_address:
        raise ValueError("Host address is empty")
    if HOST_ADDRESS_PLACEHOLDER not in template:
        raise ValueError(f"Values template has no '{HOST_ADDRESS_PLACEHOLDER}' placeholder")
    return template.replace(HOST_ADDRESS_PLACEHOLDER, host_address)
