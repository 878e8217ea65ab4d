"""Process-manager descriptor.

Frontdoor does not restart itself; a PM2 process manager does. This module
renders the ecosystem document that configures PM2's restart, memory and
logging policy for the ``frontdoor serve`` process.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

LOG_DATE_FORMAT = "YYYY-MM-DD HH:mm:ss Z"


@dataclass(frozen=True)
class ProcessPolicy:
    """Restart and resource policy for the supervised process.

    ``max_restarts`` is large enough to mean "never give up"; PM2 deletes a
    process from its list once the limit is reached.
    """

    name: str = "frontdoor"
    cwd: Path = field(default_factory=Path.cwd)
    port: int = 3000
    host: str = "0.0.0.0"
    backend_url: str | None = None
    max_memory_restart: str = "800M"
    min_uptime: str = "10s"
    max_restarts: int = 999999
    restart_delay_ms: int = 4000
    exp_backoff_restart_delay_ms: int = 100
    kill_timeout_ms: int = 5000
    listen_timeout_ms: int = 3000
    health_check_grace_period_ms: int = 3000
    log_dir: str = "./logs"
    ignore_watch: tuple[str, ...] = ("node_modules", "logs", ".git", ".next")
    extra_env: dict[str, str] = field(default_factory=dict)

    def env(self) -> dict[str, str]:
        env = {
            "APP_ENV": "production",
            "PORT": str(self.port),
            "HOST": self.host,
        }
        if self.backend_url:
            env["BACKEND_URL"] = self.backend_url
        env.update(self.extra_env)
        return env

    def to_ecosystem(self) -> dict[str, Any]:
        """Render the PM2 ecosystem document."""
        app = {
            "name": self.name,
            "script": "frontdoor",
            "cwd": str(self.cwd),
            "args": "serve",
            "interpreter": "none",
            "env": self.env(),
            "instances": 1,
            "exec_mode": "fork",
            "watch": False,
            "max_memory_restart": self.max_memory_restart,
            "error_file": f"{self.log_dir}/err.log",
            "out_file": f"{self.log_dir}/out.log",
            "log_file": f"{self.log_dir}/combined.log",
            "log_date_format": LOG_DATE_FORMAT,
            "merge_logs": True,
            "time": True,
            "autorestart": True,
            "min_uptime": self.min_uptime,
            "max_restarts": self.max_restarts,
            "restart_delay": self.restart_delay_ms,
            "exp_backoff_restart_delay": self.exp_backoff_restart_delay_ms,
            "kill_timeout": self.kill_timeout_ms,
            "listen_timeout": self.listen_timeout_ms,
            "wait_ready": True,
            "health_check_grace_period": self.health_check_grace_period_ms,
            "delete_err_log": False,
            "delete_out_log": False,
            "ignore_watch": list(self.ignore_watch),
        }
        return {"apps": [app]}
