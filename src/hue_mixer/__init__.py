"""Bridge a mixing-console control surface to a Philips Hue bridge."""

__version__ = "0.3.0"
