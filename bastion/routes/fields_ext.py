from flask_restx import fields


class EnumValue(fields.String):
    """Render an Enum member as its value."""

    def format(self, value):
        return super().format(getattr(value, 'value', value))
