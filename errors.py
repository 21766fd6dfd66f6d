"""
Error kinds surfaced by the Azure Advisor plugin
"""


class AdvisorPluginError(Exception):
    """Base class for all plugin errors"""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(AdvisorPluginError):
    """Missing or invalid user input (400)"""


class OperationNotFoundError(AdvisorPluginError):
    """Operation identifier did not resolve to a registered operation (404)"""

    def __init__(self, operation_id: str):
        super().__init__(f"Function {operation_id} not found")
        self.operation_id = operation_id


class OperationError(AdvisorPluginError):
    """A resolved operation ran and signaled failure (400)"""


class CollaboratorError(AdvisorPluginError):
    """Azure, network, AI service or storage failure; never retried"""
