class GatewayError(Exception):
    pass

class GatewayURLError(GatewayError):
    """Raised when the gateway URL can't be fetched for a fresh connect."""
    pass

class ReconnectExhausted(GatewayError):
    pass

class ConfigError(Exception):
    pass

class PayloadDecodeError(Exception):
    pass

class Reconnect(Exception):
    """Ends the current websocket so the connect loop starts another one.

    The first argument tells if the next connection should resume.
    """
    @property
    def resume(self):
        return self.args[0] if self.args else False
