# Import main lazily to avoid circular dependencies
def __getattr__(name):
    if name == "main":
        from cashify.cli.main import main
        return main
    if name == "LedgerAPI":
        from cashify.api import LedgerAPI
        return LedgerAPI
    raise AttributeError(f"module '{__name__}' has no attribute '{name}'")
