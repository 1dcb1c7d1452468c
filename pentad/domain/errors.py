class ThermalUnavailableError(RuntimeError):
    """No usable temperature: the sensor failed and the cached reading is too old."""


class PwmBackendError(RuntimeError):
    """A PWM backend could not be initialized or written."""


class ButtonInitError(RuntimeError):
    """The button input line could not be set up."""
