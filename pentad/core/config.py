from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field, model_validator

from ..domain.models import FanThresholds


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    app_name: str = "Penta Fan & Button Daemon"

    # Mode: "sim" for development; "hw" drives the real board
    mode: str = Field(default="sim")

    # Fan thresholds (Celsius), must be ascending
    fan_lv0: float = 35.0
    fan_lv1: float = 40.0
    fan_lv2: float = 45.0
    fan_lv3: float = 50.0

    # Button timing windows (seconds)
    time_twice: float = Field(default=0.7, ge=0)
    time_press: float = Field(default=1.8, ge=0)

    # Gesture -> action names, interpreted by the dispatcher
    key_click: str = "slider"
    key_twice: str = "switch"
    key_press: str = "none"

    # Fan backend: HARDWARE_PWM=1 uses the sysfs PWM chip, otherwise FAN_CHIP/FAN_LINE
    hardware_pwm: bool = False
    pwmchip: str = "0"
    pwm_channel: int = 0
    pwm_period_ns: int = Field(default=40_000, gt=0)  # 25 kHz
    fan_chip: str = ""
    fan_line: str = ""
    software_pwm_period_seconds: float = Field(default=0.025, gt=0)  # 40 Hz

    # Button (only present with the top board)
    top_board: bool = True
    button_chip: str = ""
    button_line: str = ""

    # Temperature: "auto" (hottest drive, CPU fallback) | "cpu" | "drive"
    temp_source: str = "auto"
    temp_cache_ttl_seconds: float = Field(default=60.0, gt=0)
    temp_refresh_seconds: float = Field(default=30.0, gt=0)

    # Loops
    fan_interval_seconds: float = Field(default=1.0, gt=0)
    duty_epsilon: float = Field(default=0.01, ge=0)
    button_tick_seconds: float = Field(default=0.1, gt=0)
    event_bus_size: int = Field(default=5, ge=1)
    shutdown_timeout_seconds: float = Field(default=5.0, gt=0)

    # Status API
    api_host: str = "127.0.0.1"
    api_port: int = 8080

    # Storage / logs
    sqlite_path: str = Field(default="pentad.db")
    log_file: str = "pentad.log"
    log_level: str = "INFO"

    @model_validator(mode="after")
    def _check_thresholds(self) -> "Settings":
        if not self.thresholds().ascending:
            raise ValueError(
                f"fan thresholds must be ascending, got "
                f"{self.fan_lv0}/{self.fan_lv1}/{self.fan_lv2}/{self.fan_lv3}"
            )
        return self

    def thresholds(self) -> FanThresholds:
        return FanThresholds(
            lv0=self.fan_lv0,
            lv1=self.fan_lv1,
            lv2=self.fan_lv2,
            lv3=self.fan_lv3,
        )

    def key_actions(self) -> dict[str, str]:
        return {
            "click": self.key_click,
            "twice": self.key_twice,
            "press": self.key_press,
        }


settings = Settings()
