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

"""Exception types raised by bootstrap stages."""

from __future__ import annotations


class BootstrapError(RuntimeError):
    """Base class for failures that abort the bootstrap run.

    Attributes:
        output: Diagnostic text captured from the failing operation, if any.
    """

    def __init__(self, message: str, output: str = "") -> None:
        super().__init__(message)
        self.output = output


class CommandError(BootstrapError):
    """An external command exited non-zero or could not be launched."""

    def __init__(self, command: str, exit_code: int, output: str = "") -> None:
        super().__init__(f"Command '{command}' failed with exit code {exit_code}", output)
        self.command = command
        self.exit_code = exit_code


class ChartInstallError(BootstrapError):
    """helm failed to add a repository or install/upgrade a release."""


class ReadinessTimeout(BootstrapError):
    """The control plane did not become ready before a configured ceiling."""
