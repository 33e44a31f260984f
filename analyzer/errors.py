"""Exception types shared across the notebook service."""


class NotebookError(Exception):
    """Base class for notebook errors."""


class IngestionError(NotebookError):
    """Uploaded content could not be turned into a dataset."""


class PreconditionNotMet(NotebookError):
    """An analysis was requested without a dataset or credential."""

    def __init__(self, missing: list[str]):
        self.missing = missing
        super().__init__(f"Cannot run analysis: missing {', '.join(missing)}")


class CellNotFoundError(NotebookError, KeyError):
    def __init__(self, cell_id: str):
        self.cell_id = cell_id
        super().__init__(f"Cell not found: {cell_id}")

    def __str__(self) -> str:
        return self.args[0]


class TemplateNotFoundError(NotebookError, KeyError):
    def __init__(self, kind: str):
        self.kind = kind
        super().__init__(f"No template for analysis kind: {kind}")

    def __str__(self) -> str:
        return self.args[0]


class ProviderError(NotebookError):
    """The analysis backend failed to produce a result."""


class ProviderTimeoutError(ProviderError):
    def __init__(self, timeout_s: float):
        self.timeout_s = timeout_s
        super().__init__(f"Analysis timed out after {timeout_s:g}s")
