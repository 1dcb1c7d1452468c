from __future__ import annotations

import logging

logger = logging.getLogger(__name__)


def parse_chip(chip: str | None) -> int | None:
    """Accept "0", "gpiochip0" or an empty value (default chip)."""
    if chip is None:
        return None
    chip = str(chip).strip()
    if not chip:
        return None
    if chip.startswith("gpiochip"):
        chip = chip[len("gpiochip"):]
    return int(chip)


def parse_line(line: str | int) -> int:
    return int(str(line).strip())


def pin_factory_for(chip: str | None, pin_factory=None):
    """
    Return the gpiozero pin factory for ``chip``.

    An explicit ``pin_factory`` wins (tests pass a MockFactory). Without a
    chip the gpiozero default factory is used.
    """
    if pin_factory is not None:
        return pin_factory
    chip_num = parse_chip(chip)
    if chip_num is None:
        return None
    # lgpio is only installed on the board itself
    from gpiozero.pins.lgpio import LGPIOFactory

    logger.debug("Using LGPIOFactory on gpiochip%d", chip_num)
    return LGPIOFactory(chip=chip_num)
