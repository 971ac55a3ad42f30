"""orderflow: order lifecycle coordination across kitchen and juice bar."""

__version__ = "0.1.0"
