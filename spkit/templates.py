"""SOAP envelopes used by the SAML, ADFS and FBA authentication flows."""

from __future__ import annotations

from typing import Mapping, Optional, Union

_ESCAPES = (
    ("&", "&amp;"),
    ('"', "&quot;"),
    ("'", "&apos;"),
    ("<", "&lt;"),
    (">", "&gt;"),
)

_NS_SOAP12 = "http://www.w3.org/2003/05/soap-envelope"
_NS_SOAP11 = "http://schemas.xmlsoap.org/soap/envelope/"
_NS_ADDRESSING = "http://www.w3.org/2005/08/addressing"
_NS_WSS = "http://docs.oasis-open.org/wss/2004/01/"
_NS_UTILITY = _NS_WSS + "oasis-200401-wss-wssecurity-utility-1.0.xsd"
_NS_SECEXT = _NS_WSS + "oasis-200401-wss-wssecurity-secext-1.0.xsd"
_UT_PROFILE_TYPE = _NS_WSS + "oasis-200401-wss-username-token-profile-1.0#PasswordText"
_NS_POLICY = "http://schemas.xmlsoap.org/ws/2004/09/policy"
_NS_TRUST_13 = "http://docs.oasis-open.org/ws-sx/ws-trust/200512"
_NS_TRUST_05 = "http://schemas.xmlsoap.org/ws/2005/02/trust"
_NO_PROOF_KEY = "http://schemas.xmlsoap.org/ws/2005/05/identity/NoProofKey"
_SAML_1 = "urn:oasis:names:tc:SAML:1.0:assertion"
_ANONYMOUS = _NS_ADDRESSING + "/anonymous"
_ONLINE_STS = "https://login.microsoftonline.com/extSTS.srf"
_UT_ELEMENT_ID = "uuid-7b105801-44ac-4da7-aa69-a87f9db37299-1"
_XML_DECLARATION = '<?xml version="1.0" encoding="utf-8"?>'
_MUST_UNDERSTAND = {"s:mustUnderstand": "1"}


def escape_param(text: str) -> str:
    """Escape the five XML special characters in ``text``."""
    for char, entity in _ESCAPES:
        text = text.replace(char, entity)
    return text


def compact_template(text: str) -> str:
    """Strip every line of surrounding whitespace, drop empty lines and join the rest."""
    return "".join(stripped for stripped in (line.strip() for line in text.split("\n")) if stripped)


def _el(tag: str, *children: str, attrs: Optional[Mapping[str, str]] = None) -> str:
    attributes = "".join(f' {name}="{value}"' for name, value in (attrs or {}).items())
    return f"<{tag}{attributes}>{''.join(children)}</{tag}>"


def _envelope(header: str, body: str) -> str:
    return _el(
        "s:Envelope",
        _el("s:Header", header),
        _el("s:Body", body),
        attrs={"xmlns:s": _NS_SOAP12, "xmlns:a": _NS_ADDRESSING, "xmlns:u": _NS_UTILITY},
    )


def _addressing_header(action: str, to: str) -> str:
    return (
        _el("a:Action", action, attrs=_MUST_UNDERSTAND)
        + _el("a:ReplyTo", _el("a:Address", _ANONYMOUS))
        + _el("a:To", to, attrs=_MUST_UNDERSTAND)
    )


def _security(*children: str) -> str:
    return _el("o:Security", *children, attrs={**_MUST_UNDERSTAND, "xmlns:o": _NS_SECEXT})


def _applies_to_wsa(address: str) -> str:
    return _el(
        "wsp:AppliesTo",
        _el(
            "wsa:EndpointReference",
            _el("wsa:Address", address),
            attrs={"xmlns:wsa": _NS_ADDRESSING},
        ),
        attrs={"xmlns:wsp": _NS_POLICY},
    )


def _online_request(security: str, endpoint: str) -> str:
    body = _el(
        "t:RequestSecurityToken",
        _el(
            "wsp:AppliesTo",
            _el("a:EndpointReference", _el("a:Address", endpoint)),
            attrs={"xmlns:wsp": _NS_POLICY},
        ),
        _el("t:KeyType", _NO_PROOF_KEY),
        _el("t:RequestType", _NS_TRUST_05 + "/Issue"),
        _el("t:TokenType", _SAML_1),
        attrs={"xmlns:t": _NS_TRUST_05},
    )
    header = _addressing_header(_NS_TRUST_05 + "/RST/Issue", _ONLINE_STS) + security
    return compact_template(_envelope(header, body))


def adfs_saml_wsfed(to: str, username: str, password: str, relying_party: str) -> str:
    """Build the ADFS WS-Trust username/password token request envelope."""
    credentials = _el(
        "o:UsernameToken",
        _el("o:Username", escape_param(username)),
        _el("o:Password", escape_param(password), attrs={"Type": _UT_PROFILE_TYPE}),
        attrs={"u:Id": _UT_ELEMENT_ID},
    )
    header = _addressing_header(_NS_TRUST_13 + "/RST/Issue", to) + _security(credentials)
    body = _el(
        "trust:RequestSecurityToken",
        _applies_to_wsa(relying_party),
        _el("trust:KeyType", _NS_TRUST_13 + "/Bearer"),
        _el("trust:RequestType", _NS_TRUST_13 + "/Issue"),
        attrs={"xmlns:trust": _NS_TRUST_13},
    )
    return compact_template(_envelope(header, body))


def adfs_saml_token(
    token: Union[bytes, str], not_before: str, not_after: str, relying_party: str
) -> str:
    """Wrap an ADFS-issued assertion into a RequestSecurityTokenResponse envelope."""
    if isinstance(token, (bytes, bytearray)):
        token = bytes(token).decode("utf-8", errors="replace")
    utility = {"xmlns:wsu": _NS_UTILITY}
    document = _el(
        "t:RequestSecurityTokenResponse",
        _el(
            "t:Lifetime",
            _el("wsu:Created", not_before, attrs=utility),
            _el("wsu:Expires", not_after, attrs=utility),
        ),
        _applies_to_wsa(relying_party),
        _el("t:RequestedSecurityToken", token),
        _el("t:TokenType", _SAML_1),
        _el("t:RequestType", _NS_TRUST_05 + "/Issue"),
        _el("t:KeyType", _NO_PROOF_KEY),
        attrs={"xmlns:t": _NS_TRUST_05},
    )
    return compact_template(document)


def fba_ws(username: str, password: str) -> str:
    """Build the forms-based authentication Login SOAP envelope."""
    login = _el(
        "Login",
        _el("username", escape_param(username)),
        _el("password", escape_param(password)),
        attrs={"xmlns": "http://schemas.microsoft.com/sharepoint/soap/"},
    )
    envelope = _el(
        "soap:Envelope",
        _el("soap:Body", login),
        attrs={
            "xmlns:xsi": "http://www.w3.org/2001/XMLSchema-instance",
            "xmlns:xsd": "http://www.w3.org/2001/XMLSchema",
            "xmlns:soap": _NS_SOAP11,
        },
    )
    return compact_template(_XML_DECLARATION + envelope)


def online_saml_wsfed(endpoint: str, username: str, password: str) -> str:
    """Build the SharePoint Online STS username/password token request envelope."""
    credentials = _el(
        "o:UsernameToken",
        _el("o:Username", escape_param(username)),
        _el("o:Password", escape_param(password)),
    )
    return _online_request(_security(credentials), endpoint)


def online_saml_wsfed_adfs(endpoint: str, token: str) -> str:
    """Build the SharePoint Online STS token request carrying an ADFS assertion."""
    return _online_request(_security(token), endpoint)