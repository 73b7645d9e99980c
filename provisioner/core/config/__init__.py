from provisioner.core.config.loader import (
    OPTIONAL_APPS,
    ConfigError,
    ProvisionConfig,
    load_config,
)

__all__ = ["OPTIONAL_APPS", "ConfigError", "ProvisionConfig", "load_config"]
