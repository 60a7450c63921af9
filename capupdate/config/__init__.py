# Copyright 2025 Roger Cibrian
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

"""Configuration loading for capupdate.

Layers, last wins:

  - Built-in defaults (DEFAULT_CONFIG)
  - Project file (capupdate.yaml, or --config)
  - Command-line overrides

Dicts are merged recursively and lists/scalars are replaced. ``${VAR}``
values are expanded from the environment (a ``.env`` file is honored) and
relative paths are resolved against the config file location.

Public API:

- load_config: Build the effective configuration
- DEFAULT_CONFIG: Built-in defaults

Example:
    Basic usage:

        from capupdate.config import load_config

        config = load_config(overrides={"github": {"enabled": False}})
        print(config["apps_dir"])

"""

from .loader import DEFAULT_CONFIG, load_config

__all__ = ["DEFAULT_CONFIG", "load_config"]
