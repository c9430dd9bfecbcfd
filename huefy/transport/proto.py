"""Protobuf messages for the ``huefy.sdk.v1.SDKService`` gRPC service.

The service definition is small, so the file descriptor is assembled here
instead of shipping protoc-generated modules.
"""

from typing import Any

from google.protobuf import descriptor_pb2, descriptor_pool, json_format, message_factory
from google.protobuf.message import Message

PACKAGE = "huefy.sdk.v1"
SERVICE = f"{PACKAGE}.SDKService"
SEND_EMAIL_METHOD = f"/{SERVICE}/SendEmail"
HEALTH_CHECK_METHOD = f"/{SERVICE}/HealthCheck"

_FIELD = descriptor_pb2.FieldDescriptorProto


def _field(message, name: str, number: int, field_type: int, type_name: str = "", repeated: bool = False):
    field = message.field.add()
    field.name = name
    field.number = number
    field.type = field_type
    field.label = _FIELD.LABEL_REPEATED if repeated else _FIELD.LABEL_OPTIONAL
    if type_name:
        field.type_name = f".{PACKAGE}.{type_name}"
    return field


def _build_file() -> descriptor_pb2.FileDescriptorProto:
    file_proto = descriptor_pb2.FileDescriptorProto()
    file_proto.name = "huefy/sdk/v1/sdk.service.proto"
    file_proto.package = PACKAGE
    file_proto.syntax = "proto3"

    recipient_type = file_proto.enum_type.add(name="RecipientType")
    for number, name in enumerate((
        "RECIPIENT_TYPE_UNSPECIFIED",
        "RECIPIENT_TYPE_TO",
        "RECIPIENT_TYPE_CC",
        "RECIPIENT_TYPE_BCC",
    )):
        recipient_type.value.add(name=name, number=number)

    recipient = file_proto.message_type.add(name="Recipient")
    _field(recipient, "email", 1, _FIELD.TYPE_STRING)
    _field(recipient, "type", 2, _FIELD.TYPE_ENUM, "RecipientType")

    request = file_proto.message_type.add(name="SendEmailRequest")
    data_entry = request.nested_type.add(name="DataEntry")
    data_entry.options.map_entry = True
    _field(data_entry, "key", 1, _FIELD.TYPE_STRING)
    _field(data_entry, "value", 2, _FIELD.TYPE_STRING)
    _field(request, "template_key", 1, _FIELD.TYPE_STRING)
    _field(request, "data", 2, _FIELD.TYPE_MESSAGE, "SendEmailRequest.DataEntry", repeated=True)
    _field(request, "recipient", 3, _FIELD.TYPE_MESSAGE, "Recipient")
    _field(request, "provider_type", 4, _FIELD.TYPE_STRING)

    response = file_proto.message_type.add(name="SendEmailResponse")
    _field(response, "success", 1, _FIELD.TYPE_BOOL)
    _field(response, "message", 2, _FIELD.TYPE_STRING)
    _field(response, "message_id", 3, _FIELD.TYPE_STRING)
    _field(response, "provider", 4, _FIELD.TYPE_STRING)

    health_request = file_proto.message_type.add(name="HealthCheckRequest")
    _field(health_request, "include_dependencies", 1, _FIELD.TYPE_BOOL)
    _field(health_request, "include_metrics", 2, _FIELD.TYPE_BOOL)
    _field(health_request, "include_version", 3, _FIELD.TYPE_BOOL)

    health_response = file_proto.message_type.add(name="HealthCheckResponse")
    _field(health_response, "status", 1, _FIELD.TYPE_STRING)
    _field(health_response, "timestamp", 2, _FIELD.TYPE_STRING)
    _field(health_response, "version", 3, _FIELD.TYPE_STRING)

    service = file_proto.service.add(name="SDKService")
    service.method.add(
        name="SendEmail",
        input_type=f".{PACKAGE}.SendEmailRequest",
        output_type=f".{PACKAGE}.SendEmailResponse",
    )
    service.method.add(
        name="HealthCheck",
        input_type=f".{PACKAGE}.HealthCheckRequest",
        output_type=f".{PACKAGE}.HealthCheckResponse",
    )
    return file_proto


_pool = descriptor_pool.DescriptorPool()
_pool.AddSerializedFile(_build_file().SerializeToString())


def _message_class(name: str) -> type[Message]:
    return message_factory.GetMessageClass(_pool.FindMessageTypeByName(f"{PACKAGE}.{name}"))


SendEmailRequestMessage = _message_class("SendEmailRequest")
SendEmailResponseMessage = _message_class("SendEmailResponse")
HealthCheckRequestMessage = _message_class("HealthCheckRequest")
HealthCheckResponseMessage = _message_class("HealthCheckResponse")


def build_send_email(wire: dict[str, Any]) -> Message:
    """Convert the JSON wire body of a send into a protobuf request."""
    return json_format.ParseDict(
        {
            "template_key": wire["templateKey"],
            "data": wire.get("data") or {},
            "recipient": {"email": wire["recipient"], "type": "RECIPIENT_TYPE_TO"},
            "provider_type": wire.get("providerType") or "",
        },
        SendEmailRequestMessage(),
    )


def build_health_check() -> Message:
    return HealthCheckRequestMessage(include_version=True)


def to_payload(message: Message) -> dict[str, Any]:
    """Flatten a scalar-only response message into a dict."""
    return {field.name: getattr(message, field.name) for field in message.DESCRIPTOR.fields}
