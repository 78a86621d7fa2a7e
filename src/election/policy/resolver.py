"""Policy resolver — loads election presets from config and the environment.

Resolution order for the active preset:
1. An explicit preset name passed by the caller.
2. ELECTION_POLICY from the process environment (a project .env file is
   loaded first, without overriding variables already set).
3. The config file's default_preset.

Fail-closed: an unknown preset or a preset missing a rule is an error,
never a silent fallback.
"""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any, Optional

from dotenv import load_dotenv

from election.errors import PolicyError
from election.models.policy import ElectionPolicy, RemovalMode


POLICY_FILENAME = "election_policy.json"
ENV_VAR = "ELECTION_POLICY"

_REQUIRED_KEYS = (
    "require_unique_winner",
    "require_votes_to_close",
    "reset_only_after_tally",
    "removal_mode",
    "reject_empty_proposals",
)

_BUILTIN_CONFIG: dict[str, Any] = {
    "default_preset": "strict",
    "presets": {
        "strict": {
            "require_unique_winner": True,
            "require_votes_to_close": True,
            "reset_only_after_tally": True,
            "removal_mode": RemovalMode.BY_ID.value,
            "reject_empty_proposals": True,
        },
        "permissive": {
            "require_unique_winner": False,
            "require_votes_to_close": False,
            "reset_only_after_tally": False,
            "removal_mode": RemovalMode.LAST_ONLY.value,
            "reject_empty_proposals": False,
        },
    },
}


class PolicyResolver:
    """Resolves named election presets into ElectionPolicy values."""

    def __init__(self, config: dict[str, Any]) -> None:
        self._config = config
        self._presets: dict[str, ElectionPolicy] = {}
        presets = config.get("presets")
        if not isinstance(presets, dict) or not presets:
            raise PolicyError("Policy config must define at least one preset")
        for name, rules in presets.items():
            missing = [k for k in _REQUIRED_KEYS if k not in rules]
            if missing:
                raise PolicyError(
                    f"Preset {name!r} missing rules: {', '.join(missing)}"
                )
            try:
                self._presets[name] = ElectionPolicy.from_dict(name, rules)
            except ValueError as e:
                raise PolicyError(f"Preset {name!r} is invalid: {e}") from e

        self._default = config.get("default_preset")
        if self._default not in self._presets:
            raise PolicyError(
                f"default_preset {self._default!r} is not a defined preset"
            )

    @classmethod
    def from_config_dir(cls, config_dir: Path) -> PolicyResolver:
        """Load presets from <config_dir>/election_policy.json.

        A .env file beside the config directory is loaded so that
        ELECTION_POLICY can be set per deployment.
        """
        path = config_dir / POLICY_FILENAME
        if not path.exists():
            raise PolicyError(f"Policy config not found: {path}")
        load_dotenv(config_dir.parent / ".env", override=False)
        try:
            with path.open("r", encoding="utf-8") as handle:
                data = json.load(handle)
        except json.JSONDecodeError as e:
            raise PolicyError(f"Malformed policy config {path}: {e}") from e
        return cls(data)

    @classmethod
    def default(cls) -> PolicyResolver:
        """Resolver over the built-in presets (no file access)."""
        return cls(_BUILTIN_CONFIG)

    @property
    def default_preset(self) -> str:
        return self._default

    def preset_names(self) -> list[str]:
        return sorted(self._presets)

    def resolve(self, preset: Optional[str] = None) -> ElectionPolicy:
        """Return the active policy. See module docstring for precedence."""
        name = preset or os.getenv(ENV_VAR) or self._default
        policy = self._presets.get(name)
        if policy is None:
            raise PolicyError(
                f"Unknown election policy preset: {name!r} "
                f"(available: {', '.join(self.preset_names())})"
            )
        return policy
