from __future__ import annotations

import errno
import logging
import time
from pathlib import Path

from ..domain.errors import PwmBackendError
from ..domain.policy import clamp_duty

logger = logging.getLogger(__name__)

SYSFS_PWM_ROOT = "/sys/class/pwm"


class SysfsPwmBackend:
    """
    Hardware PWM through the Linux sysfs interface.
    Responsible for: export/enable of one channel, duty writes, disable on shutdown.
    """

    def __init__(
        self,
        chip: str,
        channel: int = 0,
        period_ns: int = 40_000,
        root: str | Path = SYSFS_PWM_ROOT,
        export_timeout_s: float = 1.0,
    ) -> None:
        self.chip_path = Path(root) / f"pwmchip{chip}"
        self.channel_path = self.chip_path / f"pwm{channel}"
        self.channel = channel
        self.period_ns = int(period_ns)
        self.export_timeout_s = export_timeout_s
        self.backend_id = f"pwmchip{chip}/pwm{channel}"
        self.last_duty: float | None = None
        self._started = False

    def _write(self, path: Path, value: object) -> None:
        with open(path, "w") as f:
            f.write(str(value))

    def _export(self) -> None:
        if self.channel_path.exists():
            return
        try:
            self._write(self.chip_path / "export", self.channel)
            logger.info("Exported %s", self.backend_id)
        except OSError as e:
            if e.errno != errno.EBUSY:
                raise PwmBackendError(f"Failed to export {self.backend_id}: {e}") from e
            logger.info("%s already exported, continuing", self.backend_id)

        # udev may need a moment to create the channel directory
        deadline = time.monotonic() + self.export_timeout_s
        while not self.channel_path.exists():
            if time.monotonic() >= deadline:
                raise PwmBackendError(f"{self.channel_path} did not appear after export")
            time.sleep(0.05)

    def _enable(self) -> None:
        enable_path = self.channel_path / "enable"
        try:
            if enable_path.read_text().strip() == "1":
                logger.info("%s already enabled", self.backend_id)
                return
        except OSError:
            pass  # unreadable on some kernels; fall through to the write
        try:
            self._write(enable_path, 1)
        except OSError as e:
            if e.errno != errno.EBUSY:
                raise PwmBackendError(f"Failed to enable {self.backend_id}: {e}") from e
            logger.info("%s busy on enable, assuming active", self.backend_id)

    def start(self) -> None:
        if not self.chip_path.exists():
            raise PwmBackendError(f"PWM chip not found at {self.chip_path}")

        self._export()
        try:
            self._write(self.channel_path / "period", self.period_ns)
        except OSError as e:
            raise PwmBackendError(f"Failed to set period on {self.backend_id}: {e}") from e
        self._enable()
        self._started = True
        logger.info("Hardware PWM ready on %s (period=%dns)", self.backend_id, self.period_ns)

    def set_duty(self, fraction: float) -> None:
        if not self._started:
            raise PwmBackendError(f"{self.backend_id} used before start()")
        fraction = clamp_duty(fraction)
        duty_ns = int(self.period_ns * fraction)
        try:
            self._write(self.channel_path / "duty_cycle", duty_ns)
        except OSError as e:
            raise PwmBackendError(f"Failed to write duty_cycle on {self.backend_id}: {e}") from e
        self.last_duty = fraction

    def shutdown(self) -> None:
        logger.info("Disabling hardware PWM on %s", self.backend_id)
        try:
            self._write(self.channel_path / "enable", 0)
        except OSError as e:
            logger.warning("Failed to disable %s: %s", self.backend_id, e)
        try:
            self._write(self.chip_path / "unexport", self.channel)
        except OSError as e:
            logger.warning("Failed to unexport %s: %s", self.backend_id, e)
        self._started = False
