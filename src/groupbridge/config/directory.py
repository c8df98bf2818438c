"""Directory server configuration values."""

from __future__ import annotations

from dataclasses import dataclass

from .env import env_flag, env_float, optional_env_var, require_env_vars
from .errors import ConfigurationError

DEFAULT_GROUP_OBJECTCLASS = "groupOfNames"
DEFAULT_USER_OBJECTCLASS = "inetOrgPerson"
DEFAULT_GROUP_MEMBER_ATTRIBUTE = "member"
DEFAULT_GROUP_NAME_ATTRIBUTE = "cn"
DEFAULT_USER_NAME_ATTRIBUTE = "uid"
DEFAULT_TIMEOUT_SECONDS = 10.0


@dataclass(frozen=True, slots=True)
class BindCredentials:
    user: str
    password: str

    def __repr__(self) -> str:
        return f"BindCredentials(user={self.user!r}, password='***')"


@dataclass(frozen=True, slots=True)
class DirectoryConfig:
    uri: str
    user_base_dn: str
    group_base_dn: str
    group_objectclass: str = DEFAULT_GROUP_OBJECTCLASS
    user_objectclass: str = DEFAULT_USER_OBJECTCLASS
    group_member_attribute: str = DEFAULT_GROUP_MEMBER_ATTRIBUTE
    group_name_attribute: str = DEFAULT_GROUP_NAME_ATTRIBUTE
    user_name_attribute: str = DEFAULT_USER_NAME_ATTRIBUTE
    lowercase_usernames: bool = False
    proxy_agent: BindCredentials | None = None
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS
    expand_root_subtree: bool = False
    allow_directory_group_members: bool = False


def _setting(name: str, default: str) -> str:
    return optional_env_var(name) or default


def get_directory_config() -> DirectoryConfig:
    values = require_env_vars(
        (
            "GROUPBRIDGE_LDAP_URI",
            "GROUPBRIDGE_LDAP_USER_BASE_DN",
            "GROUPBRIDGE_LDAP_GROUP_BASE_DN",
        )
    )

    proxy_user = optional_env_var("GROUPBRIDGE_LDAP_PROXY_AGENT")
    proxy_password = optional_env_var("GROUPBRIDGE_LDAP_PROXY_PASSWORD")
    proxy_agent: BindCredentials | None = None
    if proxy_user is not None:
        if proxy_password is None:
            raise ConfigurationError(
                "GROUPBRIDGE_LDAP_PROXY_PASSWORD is required when a proxy agent is set"
            )
        proxy_agent = BindCredentials(user=proxy_user, password=proxy_password)

    timeout = env_float("GROUPBRIDGE_LDAP_TIMEOUT_SECONDS", default=DEFAULT_TIMEOUT_SECONDS)
    if timeout <= 0:
        raise ConfigurationError("GROUPBRIDGE_LDAP_TIMEOUT_SECONDS must be positive")

    return DirectoryConfig(
        uri=values["GROUPBRIDGE_LDAP_URI"],
        user_base_dn=values["GROUPBRIDGE_LDAP_USER_BASE_DN"],
        group_base_dn=values["GROUPBRIDGE_LDAP_GROUP_BASE_DN"],
        group_objectclass=_setting(
            "GROUPBRIDGE_LDAP_GROUP_OBJECTCLASS", DEFAULT_GROUP_OBJECTCLASS
        ),
        user_objectclass=_setting("GROUPBRIDGE_LDAP_USER_OBJECTCLASS", DEFAULT_USER_OBJECTCLASS),
        group_member_attribute=_setting(
            "GROUPBRIDGE_LDAP_GROUP_MEMBER_ATTRIBUTE", DEFAULT_GROUP_MEMBER_ATTRIBUTE
        ),
        group_name_attribute=_setting(
            "GROUPBRIDGE_LDAP_GROUP_NAME_ATTRIBUTE", DEFAULT_GROUP_NAME_ATTRIBUTE
        ),
        user_name_attribute=_setting(
            "GROUPBRIDGE_LDAP_USER_NAME_ATTRIBUTE", DEFAULT_USER_NAME_ATTRIBUTE
        ),
        lowercase_usernames=env_flag("GROUPBRIDGE_LDAP_LOWERCASE_USERNAME"),
        proxy_agent=proxy_agent,
        timeout_seconds=timeout,
        expand_root_subtree=env_flag("GROUPBRIDGE_LDAP_EXPAND_ROOT_SUBTREE"),
        allow_directory_group_members=env_flag("GROUPBRIDGE_ALLOW_DIRECTORY_GROUP_MEMBERS"),
    )
