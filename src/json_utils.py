"""JSON helpers backed by orjson."""

import orjson


def json_loads(b):
    return orjson.loads(b)


def json_dumps(obj, indent: bool = False) -> str:
    option = orjson.OPT_NON_STR_KEYS
    if indent:
        option |= orjson.OPT_INDENT_2
    return orjson.dumps(obj, option=option).decode("utf-8")
