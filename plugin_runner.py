"""
AI Plugin Runner
Resolves an operation id inside the plugin namespace, runs it and wraps the outcome in an ExecutionResult
"""

import logging
from dataclasses import dataclass
from typing import Optional

from errors import CollaboratorError, OperationNotFoundError
from plugin_registry import ContextVariables, OperationRegistry

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ExecutionResult:
    """Outcome of one operation run: either output (success) or error (failure)"""
    success: bool
    output: str = ""
    error: Optional[str] = None

    @classmethod
    def ok(cls, output: str) -> "ExecutionResult":
        return cls(success=True, output=output)

    @classmethod
    def failed(cls, error: str) -> "ExecutionResult":
        return cls(success=False, error=error)


class AIPluginRunner:
    def __init__(self, registry: OperationRegistry, namespace: str):
        """
        Args:
            registry: Operation registry populated at start-up
            namespace: Plugin namespace operations are resolved in (the plugin's name for model)
        """
        self.registry = registry
        self.namespace = namespace

    async def run_operation(self, operation_id: str, context: ContextVariables) -> ExecutionResult:
        """
        Run a plugin operation by id

        Args:
            operation_id: Operation name, matched exactly within the plugin namespace
            context: Variables for the run; frozen for the duration of the call

        Returns:
            ExecutionResult carrying the operation output or its error message

        Raises:
            OperationNotFoundError: If operation_id is not registered
            CollaboratorError: If a collaborator failed while the operation ran
        """
        operation = self.registry.get(self.namespace, operation_id)
        if operation is None:
            logger.warning(f"Function {operation_id} not found in plugin {self.namespace}")
            raise OperationNotFoundError(operation_id)

        context.freeze()
        try:
            output = await operation.invoke(context)
        except CollaboratorError:
            raise
        except Exception as e:
            logger.error(f"Operation {self.namespace}.{operation_id} failed: {e}")
            return ExecutionResult.failed(str(e))

        return ExecutionResult.ok(output)
