from enum import Enum


class Role(str, Enum):
    HOST = "host"
    GUEST = "guest"


class UpstreamMode(str, Enum):
    # Room code addressed in the path, authorized with the management token
    MANAGEMENT = "management"
    # Public code exchange against the auth service, single endpoint
    AUTH = "auth"
