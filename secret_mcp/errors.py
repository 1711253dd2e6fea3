"""Error taxonomy shared by the store, the env writer and the tool server."""


class SecretMcpError(Exception):
    pass


class StartupFailure(SecretMcpError):
    """The backing store is missing or cannot be opened."""


class ValidationError(SecretMcpError):
    pass


class NotFoundError(SecretMcpError):
    pass


class DuplicateNameError(SecretMcpError):
    pass


class PathError(SecretMcpError):
    pass


class UnknownOperation(SecretMcpError):
    def __init__(self, name: str):
        super().__init__(f"Unknown tool: {name}")
        self.name = name
