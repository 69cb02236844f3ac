from __future__ import annotations

from functools import lru_cache


class Color:
    """24-bit ANSI escape helpers keyed by palette name."""

    PALETTE: dict[str, tuple[int, int, int]] = {
        "white": (255, 255, 255),
        "black": (0, 0, 0),
        "red": (230, 57, 70),
        "bright_red": (255, 85, 85),
        "ruby": (224, 17, 95),
        "crimson": (220, 20, 60),
        "tomato": (255, 99, 71),
        "orange": (255, 165, 0),
        "amber": (255, 191, 0),
        "gold": (255, 215, 0),
        "khaki": (240, 230, 140),
        "yellow": (255, 255, 0),
        "green": (0, 200, 83),
        "mint": (152, 255, 152),
        "sage": (188, 184, 138),
        "fern": (79, 121, 66),
        "teal": (0, 128, 128),
        "cyan": (0, 255, 255),
        "aquamarine": (127, 255, 212),
        "blue": (30, 144, 255),
        "cobalt": (0, 71, 171),
        "navy": (0, 0, 128),
        "plum": (221, 160, 221),
        "light_magenta": (255, 119, 255),
        "magenta": (255, 0, 255),
        "peach": (255, 218, 185),
        "beige": (245, 245, 220),
        "light_gray": (200, 200, 200),
        "dove": (160, 160, 160),
        "fog": (215, 215, 215),
        "aluminum": (132, 135, 137),
    }

    @staticmethod
    @lru_cache(maxsize=None)
    def fg(name: str) -> str:
        r, g, b = Color.PALETTE.get(name, Color.PALETTE["white"])
        return f"\033[38;2;{r};{g};{b}m"

    @staticmethod
    @lru_cache(maxsize=None)
    def bg(name: str) -> str:
        r, g, b = Color.PALETTE.get(name, Color.PALETTE["black"])
        return f"\033[48;2;{r};{g};{b}m"

    @staticmethod
    def reset() -> str:
        return "\033[0m"
