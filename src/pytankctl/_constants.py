"""Internal constants shared across the library."""

# ------------------------------------------------------------------
# Device hierarchy
# ------------------------------------------------------------------

DEVICE_TYPE_BASE = "base"
DEVICE_TYPE_TANK = "tank"

# ------------------------------------------------------------------
# Response discriminators written by the device-side producers
# ------------------------------------------------------------------

RESPONSE_TYPE_SLAVE = "slave_response"
MESSAGE_TYPE_ALIVE = "alive_reply"
MESSAGE_TYPE_UPDATE = "update"

# ------------------------------------------------------------------
# Topic kinds / purposes
# ------------------------------------------------------------------

TOPIC_CONTROL = "control"
TOPIC_SETTING = "setting"
TOPIC_SLAVE_REQUEST = "slaveRequest"
DEFAULT_TOPIC_TEMPLATE = "{thing_id}/{kind}/{purpose}"

# ------------------------------------------------------------------
# Slave request defaults
# ------------------------------------------------------------------

DEFAULT_SLAVE_MODE = 3

USER_AGENT = "pytankctl"


def build_topic(template: str, kind: str, thing_id: str, purpose: str) -> str:
    """Render a fabric topic for *thing_id* from *template*.

    The template may reference ``{kind}``, ``{thing_id}`` and ``{purpose}``.

    Raises :class:`ValueError` if *thing_id* is empty.
    """
    if not thing_id:
        raise ValueError("thing_id must not be empty")
    return template.format(kind=kind, thing_id=thing_id, purpose=purpose)
