from dataclasses import dataclass


@dataclass(frozen=True)
class VelocityError:
    message: str


@dataclass(frozen=True)
class ConfigError(VelocityError):
    key: str = ""
    value: str = ""
