"""
Module defines Pydantic models for notification receivers and the delivery channels they own.

Channels form a tagged union on `type`; every compile and validation site handles each variant explicitly.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

import re
from typing import Annotated, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from services.common.url_utils import is_http_url

DESC_UNIQUE_IDENTIFIER = "Unique identifier"
DESC_RECEIVER_NAME = "Receiver name"
DESC_RECEIVER_DESCRIPTION = "Description of the receiver"
DESC_RECEIVER_CHANNELS = "Delivery channels owned by this receiver"
DESC_RECEIVER_ENABLED = "Whether the receiver is enabled"
DESC_CHANNEL_TYPE = "Channel type"
DESC_CHANNEL_SEND_RESOLVED = "Whether to notify about resolved alerts"
DESC_CHANNEL_TEMPLATE = "Message template"
DESC_EMAIL_TO = "Email recipients"
DESC_EMAIL_SUBJECT = "Email subject"
DESC_WEBHOOK_URL = "Webhook URL"
DESC_CHAT_PLATFORM = "Chat platform receiving the webhook (dingtalk, wechat, slack, ...)"
DESC_CHAT_SECRET = "Signing secret for the chat webhook"
DESC_SMS_GATEWAY_URL = "SMS gateway URL"
DESC_SMS_PHONES = "Phone numbers"

_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+$")
_PHONE_RE = re.compile(r"^\+?[0-9*\- ]{5,20}$")


def _check_url(value: str) -> str:
    if not is_http_url(value):
        raise ValueError(f"Invalid URL '{value}'")
    return value.strip()


class EmailChannel(BaseModel):
    type: Literal["email"] = Field("email", description=DESC_CHANNEL_TYPE)
    to: List[str] = Field(..., min_length=1, description=DESC_EMAIL_TO)
    subject: Optional[str] = Field(None, description=DESC_EMAIL_SUBJECT)
    template: Optional[str] = Field(None, description=DESC_CHANNEL_TEMPLATE)
    send_resolved: bool = Field(True, alias="sendResolved", description=DESC_CHANNEL_SEND_RESOLVED)
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    @field_validator("to")
    @classmethod
    def _check_recipients(cls, value: List[str]) -> List[str]:
        for address in value:
            if not _EMAIL_RE.match(address):
                raise ValueError(f"Invalid email recipient '{address}'")
        return value


class WebhookChannel(BaseModel):
    type: Literal["webhook"] = Field("webhook", description=DESC_CHANNEL_TYPE)
    url: str = Field(..., description=DESC_WEBHOOK_URL)
    send_resolved: bool = Field(True, alias="sendResolved", description=DESC_CHANNEL_SEND_RESOLVED)
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    @field_validator("url")
    @classmethod
    def validate_url(cls, value: str) -> str:
        return _check_url(value)


class ChatWebhookChannel(BaseModel):
    type: Literal["chat-webhook"] = Field("chat-webhook", description=DESC_CHANNEL_TYPE)
    platform: str = Field("generic", min_length=1, description=DESC_CHAT_PLATFORM)
    url: str = Field(..., description=DESC_WEBHOOK_URL)
    secret: Optional[str] = Field(None, description=DESC_CHAT_SECRET)
    template: Optional[str] = Field(None, description=DESC_CHANNEL_TEMPLATE)
    send_resolved: bool = Field(True, alias="sendResolved", description=DESC_CHANNEL_SEND_RESOLVED)
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    @field_validator("url")
    @classmethod
    def validate_url(cls, value: str) -> str:
        return _check_url(value)


class SmsChannel(BaseModel):
    type: Literal["sms"] = Field("sms", description=DESC_CHANNEL_TYPE)
    gateway_url: str = Field(..., alias="gatewayUrl", description=DESC_SMS_GATEWAY_URL)
    phones: List[str] = Field(..., min_length=1, description=DESC_SMS_PHONES)
    template: Optional[str] = Field(None, description=DESC_CHANNEL_TEMPLATE)
    send_resolved: bool = Field(False, alias="sendResolved", description=DESC_CHANNEL_SEND_RESOLVED)
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    @field_validator("gateway_url")
    @classmethod
    def validate_gateway_url(cls, value: str) -> str:
        return _check_url(value)

    @field_validator("phones")
    @classmethod
    def _check_phones(cls, value: List[str]) -> List[str]:
        for phone in value:
            if not _PHONE_RE.match(phone):
                raise ValueError(f"Invalid phone number '{phone}'")
        return value


Channel = Annotated[
    Union[EmailChannel, WebhookChannel, ChatWebhookChannel, SmsChannel],
    Field(discriminator="type"),
]


class Receiver(BaseModel):
    id: str = Field(..., min_length=1, description=DESC_UNIQUE_IDENTIFIER)
    name: str = Field(..., min_length=1, max_length=100, description=DESC_RECEIVER_NAME)
    description: Optional[str] = Field(None, description=DESC_RECEIVER_DESCRIPTION)
    channels: List[Channel] = Field(default_factory=list, description=DESC_RECEIVER_CHANNELS)
    enabled: bool = Field(True, description=DESC_RECEIVER_ENABLED)
    model_config = ConfigDict(populate_by_name=True, frozen=True)


class ReceiverCreate(BaseModel):
    id: Optional[str] = Field(None, description=DESC_UNIQUE_IDENTIFIER)
    name: str = Field(..., min_length=1, max_length=100, description=DESC_RECEIVER_NAME)
    description: Optional[str] = Field(None, description=DESC_RECEIVER_DESCRIPTION)
    channels: List[Channel] = Field(default_factory=list, description=DESC_RECEIVER_CHANNELS)
    enabled: bool = Field(True, description=DESC_RECEIVER_ENABLED)
    model_config = ConfigDict(populate_by_name=True)
