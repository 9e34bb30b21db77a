"""
XML documents sent to KSeF during session initialisation.
"""

from __future__ import annotations

from enum import Enum
from typing import NamedTuple
from xml.sax.saxutils import escape

AUTH_REQUEST_NS = "http://ksef.mf.gov.pl/schema/gtw/svc/online/auth/request/2021/10/01/0001"
ONLINE_TYPES_NS = "http://ksef.mf.gov.pl/schema/gtw/svc/online/types/2021/10/01/0001"
TYPES_NS = "http://ksef.mf.gov.pl/schema/gtw/svc/types/2021/10/01/0001"
XSI_NS = "http://www.w3.org/2001/XMLSchema-instance"

# Invoice document type descriptor
SERVICE_NAME = "KSeF"
SYSTEM_CODE = "FA (2)"
SCHEMA_VERSION = "1-0E"
TARGET_NAMESPACE = "http://crd.gov.pl/wzor/2023/06/29/12648/"
FORM_VALUE = "FA"

COMPANY_SUBJECT_TYPE = "onip"
COMPANY_IDENTIFIER_TYPE = "SubjectIdentifierByCompanyType"
PERSON_IDENTIFIER_TYPE = "SubjectIdentifierToPersonType"


class AuthRequestVariant(str, Enum):
    SIGNED = "signed"
    TOKEN = "token"


class _Layout(NamedTuple):
    declaration: str
    root: str
    auth_prefix: str
    types_prefix: str
    namespaces: str


_LAYOUTS = {
    AuthRequestVariant.SIGNED: _Layout(
        declaration='<?xml version="1.0" encoding="UTF-8"?>',
        root="AuthRequest",
        auth_prefix="ns2",
        types_prefix="ns3",
        namespaces=(
            f'xmlns:ns2="{AUTH_REQUEST_NS}" xmlns="{ONLINE_TYPES_NS}" '
            f'xmlns:ns3="{TYPES_NS}"'
        ),
    ),
    AuthRequestVariant.TOKEN: _Layout(
        declaration='<?xml version="1.0" encoding="UTF-8" standalone="yes"?>',
        root="InitSessionTokenRequest",
        auth_prefix="ns3",
        types_prefix="ns2",
        namespaces=(
            f'xmlns="{ONLINE_TYPES_NS}" xmlns:ns2="{TYPES_NS}" '
            f'xmlns:ns3="{AUTH_REQUEST_NS}"'
        ),
    ),
}


def identifier_type_for(subject_type: str) -> str:
    if subject_type == COMPANY_SUBJECT_TYPE:
        return COMPANY_IDENTIFIER_TYPE
    return PERSON_IDENTIFIER_TYPE


def build_auth_request(
    variant: AuthRequestVariant,
    challenge: str,
    subject_type: str,
    identifier: str,
    encrypted_token: str | None = None,
) -> str:
    """Render the session-init document for the signed or the token flow.

    The token flow always identifies a company and carries the encrypted
    token; the signed flow picks the identifier type from ``subject_type``.
    """
    layout = _LAYOUTS[variant]
    auth, types = layout.auth_prefix, layout.types_prefix

    if variant is AuthRequestVariant.TOKEN:
        if encrypted_token is None:
            msg = "token flow requires an encrypted token"
            raise ValueError(msg)
        identifier_type = COMPANY_IDENTIFIER_TYPE
        trailer = f"<Token>{escape(encrypted_token)}</Token>"
    else:
        identifier_type = identifier_type_for(subject_type)
        trailer = "<Type>SerialNumber</Type>"

    lines = [
        layout.declaration,
        f"<{auth}:{layout.root} {layout.namespaces}>",
        f"  <{auth}:Context>",
        f"    <Challenge>{escape(challenge)}</Challenge>",
        f'    <Identifier xmlns:xsi="{XSI_NS}" xsi:type="{types}:{identifier_type}">',
        f"      <{types}:Identifier>{escape(identifier)}</{types}:Identifier>",
        "    </Identifier>",
        "    <DocumentType>",
        f"      <{types}:Service>{SERVICE_NAME}</{types}:Service>",
        f"      <{types}:FormCode>",
        f"        <{types}:SystemCode>{SYSTEM_CODE}</{types}:SystemCode>",
        f"        <{types}:SchemaVersion>{SCHEMA_VERSION}</{types}:SchemaVersion>",
        f"        <{types}:TargetNamespace>{TARGET_NAMESPACE}</{types}:TargetNamespace>",
        f"        <{types}:Value>{FORM_VALUE}</{types}:Value>",
        f"      </{types}:FormCode>",
        "    </DocumentType>",
        f"    {trailer}",
        f"  </{auth}:Context>",
        f"</{auth}:{layout.root}>",
    ]
    return "\n".join(lines)
