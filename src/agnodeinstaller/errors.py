"""Domain errors for AG Node Installer."""


class InstallerError(RuntimeError):
    """Raised when provisioning cannot continue safely."""
