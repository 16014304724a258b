class EmptyInputError(ValueError):
    """Raised when a similarity relation or graph holds no vertices"""
