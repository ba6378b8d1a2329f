import re
from textwrap import dedent, indent

_PLACEHOLDER = re.compile(r"\{\{ (\w+) \}\}")


def render(template: str, **values: str) -> str:
    """Substitute ``{{ name }}`` placeholders.

    A placeholder alone on its line is a block: every line of the value is
    indented like the placeholder, and an empty value drops the line.
    """
    lines: list[str] = []
    for line in template.splitlines():
        block = _PLACEHOLDER.fullmatch(line.strip())
        if block is not None:
            value = values[block.group(1)]
            if value:
                lines.append(indent(value, line[: len(line) - len(line.lstrip())]))
            continue
        lines.append(_PLACEHOLDER.sub(lambda match: values[match.group(1)], line))
    return "\n".join(lines)


MODULE_TEMPLATE = dedent(
    """
    def build(context):
        existing = context.existing
        {{ steps }}
        return existing


    def pipeline(context):
        try:
            value = context.check_recursion()
            if value is not NO_VALUE:
                return value
            {{ lifetime }}
        except Exception as exc:
            context.fail(exc)


    def build_up(context):
        try:
            return build(context)
        except Exception as exc:
            context.fail(exc)
    """,
).strip()

TRANSIENT_LIFETIME_TEMPLATE = "return build(context)"

CACHED_LIFETIME_TEMPLATE = dedent(
    """
    value = {{ manager }}.get_value(context)
    if value is not NO_VALUE:
        return value
    value = build(context)
    {{ manager }}.set_value(value, context)
    return value
    """,
).strip()

SYNCHRONIZED_LIFETIME_TEMPLATE = dedent(
    """
    value = {{ manager }}.get_value(context)
    if value is not NO_VALUE:
        return value
    with {{ manager }}.building():
        value = {{ manager }}.get_value(context)
        if value is not NO_VALUE:
            return value
        value = build(context)
        {{ manager }}.set_value(value, context)
    return value
    """,
).strip()

RECOVERABLE_LIFETIME_TEMPLATE = dedent(
    """
    value = {{ manager }}.get_value(context)
    if value is not NO_VALUE:
        return value
    context.add_recovery({{ manager }})
    value = build(context)
    {{ manager }}.set_value(value, context)
    context.remove_recovery({{ manager }})
    return value
    """,
).strip()

PARAMETER_TEMPLATE = dedent(
    """
    try:
        {{ target }} = context.resolve_parameter({{ owner }}, {{ parameter_name }}, {{ value }})
    except Exception as exc:
        annotate(exc, {{ marker }})
        raise
    """,
).strip()

CONSTRUCTOR_TEMPLATE = dedent(
    """
    if existing is NO_VALUE:
        try:
            {{ parameters }}
            existing = {{ constructor }}({{ arguments }})
        except Exception as exc:
            annotate(exc, {{ marker }})
            raise
        context.existing = existing
        {{ record }}
    """,
).strip()

FACTORY_TEMPLATE = dedent(
    """
    if existing is NO_VALUE:
        existing = {{ factory }}(context.container, context.dependency_type, context.name)
        context.existing = existing
    """,
).strip()

INSTANCE_TEMPLATE = dedent(
    """
    if existing is NO_VALUE:
        raise {{ missing_instance }}(context)
    """,
).strip()

FIELD_TEMPLATE = dedent(
    """
    try:
        existing.{{ field_name }} = context.resolve_field({{ owner }}, {{ field_literal }}, {{ value }})
    except Exception as exc:
        annotate(exc, {{ marker }})
        raise
    """,
).strip()

PROPERTY_TEMPLATE = dedent(
    """
    try:
        existing.{{ property_name }} = context.resolve_property(
            {{ owner }},
            {{ property_literal }},
            {{ value }},
        )
    except Exception as exc:
        annotate(exc, {{ marker }})
        raise
    """,
).strip()

METHOD_TEMPLATE = dedent(
    """
    try:
        {{ parameters }}
        existing.{{ method_name }}({{ arguments }})
    except Exception as exc:
        annotate(exc, {{ marker }})
        raise
    """,
).strip()
