"""sing-box SS2022 provisioner."""

__version__ = "0.1.0"
