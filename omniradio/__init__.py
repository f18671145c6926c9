"""OmniRadio - internet radio browser and player."""

__version__ = "0.1.0"
