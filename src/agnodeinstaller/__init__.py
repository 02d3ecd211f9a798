"""
AG Node Installer - host provisioning for Alliance Games nodes
"""

__version__ = "0.1.0"

from .core import InstallerError, NodeInstaller

__all__ = ["NodeInstaller", "InstallerError"]
