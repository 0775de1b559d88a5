"""
specmock context parsing

Context files are YAML maps of field names to values. String values with a
reserved prefix become generators instead of literals:

    name: fake:person.first_name      # named fake generator
    job: fake:                        # generator named after the key
    code: func:botify:???-###         # one argument factory
    age: func:int_between:18,99       # two argument factory
    serial: botify:##-??              # short for func:botify:##-??
    owner: alias:people.owner.name    # value of another context
    label: join:-,people.owner.name,common.code
                                      # joined values of other contexts

Aliases and joins may point into other files, so they are resolved once
all files of a directory are loaded.
"""

import logging
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Tuple, Union

import yaml

from ..common import get_by_dotted_path, random_choice, set_by_dotted_path
from ..errors import ContextLoadError
from .fakes import FAKE_FUNCTIONS, FUNC_FACTORIES_1_ARG, FUNC_FACTORIES_2_ARGS


logger = logging.getLogger("specmock.contexts")

PREFIX_FAKE = 'fake'
PREFIX_FUNC = 'func'
PREFIX_BOTIFY = 'botify'
PREFIX_ALIAS = 'alias'
PREFIX_JOIN = 'join'

FAKE_NAMESPACE = 'fake'

CONTEXT_EXTENSIONS = ('.yml', '.yaml')


class ContextFunction:
    """
    Generator bound to a context value.

    Calling it produces a fresh value. Two functions compare equal when they
    were parsed from the same source string.
    """

    def __init__(self, source: str, fn: Callable[[], Any]):
        self.source = source
        self.fn = fn

    def __call__(self) -> Any:
        return self.fn()

    def __eq__(self, other: Any) -> bool:
        return isinstance(other, ContextFunction) and other.source == self.source

    def __hash__(self) -> int:
        return hash(self.source)

    def __repr__(self) -> str:
        return f"ContextFunction({self.source!r})"


def _lookup_fake(source: str, *names: str) -> Optional[ContextFunction]:
    for name in names:
        if name and name in FAKE_FUNCTIONS:
            return ContextFunction(source, FAKE_FUNCTIONS[name])
    return None


def parse_context_value(value: str, full_key: str = '', key: str = '') -> Any:
    """
    Resolve one string value into a generator when it has a known prefix.

    Args:
        value: Raw string from the context file
        full_key: Dotted path of the value inside its file
        key: Leaf key of the value

    Returns:
        ContextFunction for recognized generators, the string itself otherwise
    """
    parts = value.split(':', 2)
    if len(parts) < 2:
        return value

    prefix = parts[0].lower()
    name = parts[1]

    if prefix == PREFIX_FAKE:
        fn = _lookup_fake(value, name) if name else _lookup_fake(value, full_key, key)
        if fn is None:
            logger.debug(f"Unknown fake function in {value!r}")
            return value
        return fn

    if prefix == PREFIX_BOTIFY:
        pattern = value.split(':', 1)[1]
        return ContextFunction(value, FUNC_FACTORIES_1_ARG['botify'](pattern))

    if prefix != PREFIX_FUNC:
        return value

    if len(parts) == 2 or parts[2] == '':
        fn = _lookup_fake(value, name)
        return fn if fn is not None else value

    arg = parts[2]
    if name in FUNC_FACTORIES_2_ARGS and ',' in arg:
        first, second = (a.strip() for a in arg.split(',', 1))
        try:
            return ContextFunction(value, FUNC_FACTORIES_2_ARGS[name](first, second))
        except ValueError:
            logger.warning(f"Invalid arguments in {value!r}")
            return value

    if name in FUNC_FACTORIES_1_ARG:
        return ContextFunction(value, FUNC_FACTORIES_1_ARG[name](arg))

    logger.debug(f"Unknown context function in {value!r}")
    return value


def _parse_mapping(data: Dict[str, Any], prefix: str, aliases: Dict[str, str]) -> Dict[str, Any]:
    result: Dict[str, Any] = {}
    for raw_key, value in data.items():
        key = str(raw_key)
        full_key = f"{prefix}.{key}" if prefix else key

        if isinstance(value, str):
            if value.lower().startswith(PREFIX_ALIAS + ':'):
                aliases[full_key] = value[len(PREFIX_ALIAS) + 1:]
                continue
            result[key] = parse_context_value(value, full_key, key)
        elif isinstance(value, dict):
            result[key] = _parse_mapping(value, full_key, aliases)
        elif isinstance(value, list):
            result[key] = [
                parse_context_value(item, full_key, key) if isinstance(item, str) else item
                for item in value
            ]
        else:
            result[key] = value
    return result


def parse_context(content: Union[bytes, str]) -> Tuple[Dict[str, Any], Dict[str, str]]:
    """
    Parse context file content.

    Args:
        content: YAML content

    Returns:
        Tuple of (values, aliases). Aliases map the dotted key of the value
        to its dotted target ``namespace.path``.

    Raises:
        ContextLoadError: If the content is not a YAML mapping
    """
    try:
        data = yaml.safe_load(content)
    except yaml.YAMLError as e:
        raise ContextLoadError(f"Invalid context YAML: {e}") from e

    if data is None:
        return {}, {}
    if not isinstance(data, dict):
        raise ContextLoadError(f"Context must be a mapping, got {type(data).__name__}")

    aliases: Dict[str, str] = {}
    values = _parse_mapping(data, '', aliases)
    return values, aliases


def parse_context_file(path: Union[str, Path]) -> Tuple[Dict[str, Any], Dict[str, str]]:
    """
    Parse a context file.

    Example:
        values, aliases = parse_context_file('contexts/person.yml')
        values['job']()  # 'Engineer, civil (consulting)'

    Raises:
        ContextLoadError: If the file cannot be read or parsed
    """
    try:
        content = Path(path).read_bytes()
    except OSError as e:
        raise ContextLoadError(f"Failed to read context {path}: {e}") from e
    return parse_context(content)


def _join_function(source: str, namespaces: Dict[str, Any]) -> ContextFunction:
    items = source.split(':', 1)[1].split(',')
    separator, paths = items[0], items[1:]

    getters = []
    for path in paths:
        value = get_by_dotted_path(namespaces, path)
        if value is None:
            getters.append(lambda literal=path: literal)
        elif isinstance(value, ContextFunction):
            getters.append(value)
        elif isinstance(value, list):
            getters.append(lambda values=value: random_choice(values))
        else:
            getters.append(lambda constant=value: constant)

    return ContextFunction(source, lambda: separator.join(str(getter()) for getter in getters))


def _process_joins(namespaces: Dict[str, Any], node: Dict[str, Any]) -> None:
    for key, value in node.items():
        if isinstance(value, str) and value.lower().startswith(PREFIX_JOIN + ':'):
            node[key] = _join_function(value, namespaces)
        elif isinstance(value, dict):
            _process_joins(namespaces, value)


def resolve_aliases(namespaces: Dict[str, Dict[str, Any]], aliases: Dict[str, Dict[str, str]]) -> None:
    """
    Copy alias targets into place.

    Args:
        namespaces: Loaded contexts by namespace, updated in place
        aliases: Per namespace, dotted key -> ``namespace.path`` target
    """
    for namespace, required in aliases.items():
        for key, target in required.items():
            target_ns, _, target_path = target.partition('.')
            source = namespaces.get(target_ns)
            value = get_by_dotted_path(source, target_path) if target_path and isinstance(source, dict) else source
            if value is None:
                logger.error(f"Context {namespace} requires alias {key} -> {target}, but it is not defined")
                continue
            set_by_dotted_path(namespaces.setdefault(namespace, {}), key, value)


def load_contexts(
    files: Dict[str, Union[bytes, str]],
    parsed: Optional[Dict[str, Dict[str, Any]]] = None,
) -> Dict[str, Dict[str, Any]]:
    """
    Load several context files as namespaces.

    Broken files are logged and skipped. Aliases and joins are resolved
    after every file is parsed, so they may point into any namespace.

    Args:
        files: Namespace name -> YAML content
        parsed: Already parsed namespaces to include

    Returns:
        Namespace name -> context values
    """
    namespaces: Dict[str, Dict[str, Any]] = dict(parsed or {})
    aliases: Dict[str, Dict[str, str]] = {}

    for namespace, content in files.items():
        try:
            values, file_aliases = parse_context(content)
        except ContextLoadError as e:
            logger.error(f"Skipping context {namespace}: {e}")
            continue
        namespaces[namespace] = values
        aliases[namespace] = file_aliases

    resolve_aliases(namespaces, aliases)
    for values in namespaces.values():
        _process_joins(namespaces, values)

    return namespaces


def load_contexts_from_dir(directory: Union[str, Path]) -> Dict[str, Dict[str, Any]]:
    """Load every ``*.yml``/``*.yaml`` file of a directory, named by file stem."""
    directory = Path(directory)
    if not directory.is_dir():
        return {}

    files = {}
    for path in sorted(directory.iterdir()):
        if path.is_file() and path.suffix.lower() in CONTEXT_EXTENSIONS:
            try:
                files[path.stem] = path.read_bytes()
            except OSError as e:
                logger.error(f"Failed to read context {path}: {e}")

    contexts = load_contexts(files)
    logger.info(f"Loaded {len(contexts)} contexts from {directory}")
    return contexts


def collect_contexts(
    names: List[Dict[str, str]],
    file_collections: Dict[str, Any],
    initial: Optional[Dict[str, Any]] = None,
) -> List[Dict[str, Any]]:
    """
    Build the ordered list of context maps used for replacements.

    Args:
        names: Ordered ``{namespace: subkey}`` references; an empty subkey
            selects the whole namespace, otherwise only the sub map
        file_collections: Loaded namespaces
        initial: Highest priority map, placed first when not empty

    Returns:
        Context maps, highest priority first

    Example:
        collect_contexts(
            [{'common': ''}, {'service': 'person'}],
            {'common': {'name': 'Jane'}, 'service': {'person': {'job': 'X'}}},
            {'city': 'NY'},
        )
        # [{'city': 'NY'}, {'name': 'Jane'}, {'job': 'X'}]
    """
    result: List[Dict[str, Any]] = []
    if initial:
        result.append(initial)

    for reference in names:
        for namespace, subkey in reference.items():
            data = file_collections.get(namespace)
            if not isinstance(data, dict):
                logger.debug(f"Context {namespace} not found")
                continue

            if not subkey:
                result.append(data)
                continue

            sub = get_by_dotted_path(data, subkey)
            if isinstance(sub, dict):
                result.append(sub)
            else:
                logger.debug(f"Context {namespace} has no section {subkey}")

    return result


def fake_namespace() -> Dict[str, ContextFunction]:
    """Every fake generator keyed as ``fake:<name>``, for ``{fake:uuid.v4}`` placeholders."""
    return {
        f"{PREFIX_FAKE}:{name}": ContextFunction(f"{PREFIX_FAKE}:{name}", fn)
        for name, fn in FAKE_FUNCTIONS.items()
    }


def default_context_names(namespaces: Dict[str, Any]) -> List[Dict[str, str]]:
    """References to every loaded namespace, then the fake namespace."""
    names = [{name: ''} for name in namespaces if name != FAKE_NAMESPACE]
    names.append({FAKE_NAMESPACE: ''})
    return names
