"""Display, keypad and timers."""
