"""
Plugin Operation Registry
Context variables, the (namespace, name) -> operation table, prompt templates
and the loader that turns a directory of prompt definitions into operations
"""

import inspect
import json
import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Awaitable, Callable, Dict, Iterator, List, MutableMapping, Optional, Protocol, Tuple, Union

from errors import OperationError

logger = logging.getLogger(__name__)

GLOBAL_NAMESPACE = "_GLOBAL_FUNCTIONS_"
PROMPT_FILE = "skprompt.txt"
CONFIG_FILE = "config.json"


class ContextVariables(MutableMapping):
    """
    Ordered string variables passed to an operation

    The distinguished input value lives under the "input" key. The dispatcher
    freezes the context before execution; a frozen context rejects writes.
    """

    INPUT = "input"

    def __init__(self, content: str = "", variables: Optional[Dict[str, str]] = None):
        self._variables: Dict[str, str] = {self.INPUT: content}
        self._frozen = False
        for name, value in (variables or {}).items():
            self[name] = value

    @property
    def input(self) -> str:
        return self._variables[self.INPUT]

    @input.setter
    def input(self, value: str) -> None:
        self[self.INPUT] = value

    @property
    def frozen(self) -> bool:
        return self._frozen

    def freeze(self) -> "ContextVariables":
        self._frozen = True
        return self

    def copy(self) -> "ContextVariables":
        """Mutable copy, regardless of whether this context is frozen"""
        return ContextVariables(self.input, dict(self._variables))

    def __getitem__(self, name: str) -> str:
        return self._variables[name]

    def __setitem__(self, name: str, value: str) -> None:
        if self._frozen:
            raise TypeError("Context variables are read-only during execution")
        if not isinstance(value, str):
            raise TypeError(f"Context variable '{name}' must be a string, got {type(value).__name__}")
        self._variables[name] = value

    def __delitem__(self, name: str) -> None:
        if self._frozen:
            raise TypeError("Context variables are read-only during execution")
        del self._variables[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._variables)

    def __len__(self) -> int:
        return len(self._variables)

    def __repr__(self) -> str:
        return f"ContextVariables({self._variables!r})"


OperationFunction = Callable[[ContextVariables], Union[str, Awaitable[str]]]


@dataclass
class Operation:
    """A named callable exposed to the dispatcher"""
    namespace: str
    name: str
    function: OperationFunction
    description: str = ""
    parameters: List[Dict[str, Any]] = field(default_factory=list)

    async def invoke(self, context: ContextVariables) -> str:
        result = self.function(context)
        if inspect.isawaitable(result):
            result = await result
        return "" if result is None else str(result)


class OperationRegistry:
    """Explicit registration table of operations, built once at start-up"""

    def __init__(self):
        self._operations: Dict[Tuple[str, str], Operation] = {}

    def register(
        self,
        namespace: str,
        name: str,
        function: OperationFunction,
        description: str = "",
        parameters: Optional[List[Dict[str, Any]]] = None,
    ) -> Operation:
        key = (namespace, name)
        if key in self._operations:
            raise ValueError(f"Operation {namespace}.{name} is already registered")

        operation = Operation(namespace, name, function, description, list(parameters or []))
        self._operations[key] = operation
        logger.debug(f"Registered operation {namespace}.{name}")
        return operation

    def get(self, namespace: str, name: str) -> Optional[Operation]:
        return self._operations.get((namespace, name))

    def list_operations(self, namespace: Optional[str] = None) -> List[Operation]:
        return [op for (ns, _), op in self._operations.items() if namespace is None or ns == namespace]

    def __contains__(self, key: Tuple[str, str]) -> bool:
        return key in self._operations

    def __len__(self) -> int:
        return len(self._operations)


_BLOCK_PATTERN = re.compile(r"\{\{(.*?)\}\}", re.DOTALL)


class PromptTemplate:
    """
    Minimal prompt template

    Supported blocks:
        {{$name}}            value of a context variable ("" when missing)
        {{fn $name}}         call global operation fn with input = $name
        {{ns.fn 'literal'}}  call operation ns.fn with a literal input
    """

    def __init__(self, template: str, registry: "OperationRegistry"):
        self.template = template
        self.registry = registry

    async def render(self, context: ContextVariables) -> str:
        parts = []
        position = 0
        for match in _BLOCK_PATTERN.finditer(self.template):
            parts.append(self.template[position:match.start()])
            parts.append(await self._render_block(match.group(1).strip(), context))
            position = match.end()
        parts.append(self.template[position:])
        return "".join(parts)

    async def _render_block(self, block: str, context: ContextVariables) -> str:
        if not block:
            return ""
        if block.startswith("$"):
            return context.get(block[1:], "")

        tokens = block.split(maxsplit=1)
        function_name = tokens[0]
        namespace, _, name = function_name.rpartition(".")
        operation = self.registry.get(namespace or GLOBAL_NAMESPACE, name)
        if operation is None:
            raise OperationError(f"Function {function_name} not found in prompt template")

        call_context = context.copy()
        if len(tokens) > 1:
            call_context.input = self._resolve_argument(tokens[1].strip(), context)
        return await operation.invoke(call_context)

    @staticmethod
    def _resolve_argument(argument: str, context: ContextVariables) -> str:
        if argument.startswith("$"):
            return context.get(argument[1:], "")
        if len(argument) >= 2 and argument[0] == argument[-1] and argument[0] in ("'", '"'):
            return argument[1:-1]
        return argument


class CompletionService(Protocol):
    async def complete(self, prompt: str, request_settings: Optional[Dict[str, Any]] = None) -> str:
        ...


def _prompt_function(template: PromptTemplate, chat_service: CompletionService, completion: Dict[str, Any]):
    async def run_prompt(context: ContextVariables) -> str:
        prompt = await template.render(context)
        return await chat_service.complete(prompt, completion)

    return run_prompt


def load_prompts_from_directory(
    registry: OperationRegistry, namespace: str, folder: str, chat_service: CompletionService
) -> List[Operation]:
    """
    Register every prompt definition under folder as an operation in namespace

    Each sub-directory holding a skprompt.txt becomes one operation named after
    the directory; an optional config.json supplies the description, input
    parameters and completion settings.

    Args:
        registry: Registry to populate
        namespace: Plugin namespace the operations are bound to
        folder: Directory of prompt definitions
        chat_service: Completion backend the prompts run against

    Returns:
        The registered operations

    Raises:
        FileNotFoundError: If folder does not exist
    """
    root = Path(folder)
    if not root.is_dir():
        raise FileNotFoundError(f"Prompts folder not found: {folder}")

    operations = []
    for directory in sorted(root.iterdir()):
        prompt_path = directory / PROMPT_FILE
        if not prompt_path.is_file():
            continue

        config_path = directory / CONFIG_FILE
        config = json.loads(config_path.read_text(encoding="utf-8")) if config_path.is_file() else {}

        template = PromptTemplate(prompt_path.read_text(encoding="utf-8"), registry)
        operations.append(registry.register(
            namespace,
            directory.name,
            _prompt_function(template, chat_service, config.get("completion", {})),
            description=config.get("description", ""),
            parameters=config.get("input", {}).get("parameters", []),
        ))

    logger.info(f"Loaded {len(operations)} prompt operations into '{namespace}' from {folder}")
    return operations
