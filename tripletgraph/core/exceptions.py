"""Custom exceptions for triplet graph operations."""


class GraphError(Exception):
    """Base exception for triplet graph operations."""
    pass


class TripletValidationError(GraphError):
    """Raised when a triplet is missing one of its three parts or a part is not a mapping."""
    def __init__(self, missing: list[str] | None = None, invalid: list[str] | None = None):
        self.missing = missing or []
        self.invalid = invalid or []
        if self.missing:
            message = f"Triplets added need to include all three fields (missing: {', '.join(self.missing)})"
        else:
            message = f"Triplet parts must be mappings (invalid: {', '.join(self.invalid)})"
        super().__init__(message)


class StoreError(GraphError):
    """Raised when the triplet store fails to read or write."""
    def __init__(self, operation: str, detail: str):
        self.operation = operation
        self.detail = detail
        super().__init__(f"Triplet store {operation} failed: {detail}")


class NodeNotFoundError(GraphError):
    """Raised when a node is not found."""
    def __init__(self, node_hash: str):
        self.node_hash = node_hash
        super().__init__(f"Node '{node_hash}' not found in graph")


class InvalidDocumentIdError(GraphError):
    """Raised when a graph is created without a usable document id."""
    def __init__(self, document_id, reason: str = "Document Id passed into graph isn't a string."):
        self.document_id = document_id
        super().__init__(reason)
