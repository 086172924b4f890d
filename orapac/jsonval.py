"""
Pull one value out of a JSON document with a jq style path.

    json_value("[0].NAME", '[{"NAME":"alpha"}]').text  => alpha
    json_value("user.roles[1]", doc).type              => string

rc 1 - key or json missing, malformed path, invalid json
rc 2 - key / index not found
"""
import json
import re

from orapac import config
from orapac.dbug import debugg
from orapac.errors import JsonValueError
from orapac.loggy import loggy

# one path step: a key or a [N] index
STEP_PATTERN = re.compile(r'([^.\[\]]+)|\[(\d+)\]')


class JsonValue(object):
    """value - python object, text - printable form, type - json type name"""

    def __init__(self, value, text, type):
        self.value = value
        self.text = text
        self.type = type

    def __repr__(self):
        return "JsonValue(text={!r}, type={!r})".format(self.text, self.type)


def parse_path(key):
    """
    'user.name' => ['user', 'name'], 'items[0]' => ['items', 0],
    '[0].NAME' => [0, 'NAME']. A leading . is allowed ( .user.name ).
    """
    if not key or not key.strip():
        raise JsonValueError("Assertion failed - Required parameter --key not provided", rc=1)

    path = key.strip()
    if path.startswith("."):
        path = path[1:]
    if not path:
        raise JsonValueError("Invalid key path '{}'".format(key), rc=1)

    steps = []
    pos = 0
    expect_step = True
    while pos < len(path):
        if path[pos] == "." and not expect_step:
            pos += 1
            expect_step = True
            continue
        match = STEP_PATTERN.match(path, pos)
        if not match or (match.group(1) is not None and not expect_step):
            raise JsonValueError("Invalid key path '{}'".format(key), rc=1)
        if match.group(1) is not None:
            steps.append(match.group(1))
        else:
            steps.append(int(match.group(2)))
        pos = match.end()
        expect_step = False

    if expect_step:
        # trailing dot
        raise JsonValueError("Invalid key path '{}'".format(key), rc=1)

    return steps


def json_type(value):
    # bool first, True is an int too
    if isinstance(value, bool):
        return "boolean"
    if value is None:
        return "null"
    if isinstance(value, (int, float)):
        return "number"
    if isinstance(value, str):
        return "string"
    if isinstance(value, list):
        return "array"
    return "object"


def load_json(json_text):
    text = (json_text or "").strip()
    if not text:
        raise JsonValueError("Assertion failed - JSON string not provided (--json or GV_SQL_RESULT_JSON)", rc=1)
    if not text.startswith(("{", "[")):
        raise JsonValueError("Invalid JSON format (must start with { or [)", rc=1)
    try:
        return json.loads(text)
    except ValueError as e:
        raise JsonValueError("Invalid JSON format: {}".format(e), rc=1)


def lookup(document, steps, key):
    current = document
    for step in steps:
        if isinstance(step, int):
            if not isinstance(current, list) or step >= len(current):
                raise JsonValueError("Key '{}' not found in JSON".format(key), rc=2)
        elif not isinstance(current, dict) or step not in current:
            raise JsonValueError("Key '{}' not found in JSON".format(key), rc=2)
        current = current[step]
    return current


def json_value(key, json_text=None):
    """Return a JsonValue for key in json_text ( default GV_SQL_RESULT_JSON )."""
    debugg("json_value()...starting...key={}".format(key))

    if not key:
        raise JsonValueError("Assertion failed - Required parameter --key not provided", rc=1)
    json_text = config.setting("GV_SQL_RESULT_JSON", json_text)

    steps = parse_path(key)
    document = load_json(json_text)

    loggy("variable", "Key: {}".format(key))
    loggy("variable", "JSON: {}...".format(json_text.strip()[:80]))

    value = lookup(document, steps, key)
    value_type = json_type(value)
    if value_type == "string":
        text = value
    else:
        text = json.dumps(value, separators=(',', ':'))

    loggy("success", "Value extracted successfully")
    loggy("variable", "Value: {}".format(text))
    loggy("variable", "Type: {}".format(value_type))
    return JsonValue(value, text, value_type)
