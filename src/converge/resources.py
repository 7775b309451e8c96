"""Built-in resource type descriptors.

Status tables follow the values each control-plane API documents. Statuses
not listed here still classify as transient, so a value introduced later by
the provider keeps the poller waiting (bounded by the operation timeout)
instead of failing or converging early.
"""

from __future__ import annotations

import json
from collections.abc import Iterable, Mapping
from typing import Any

from .clients.aws import AwsCall, AwsHandler, AwsOperations
from .descriptors import (
    Operation,
    ResourceDescriptor,
    ResourceRegistry,
    WaitCondition,
    build_registry,
)
from .errors import ErrorKind, RemoteError
from .mapping import (
    FieldMap,
    FieldMapping,
    subset_of,
    tags_equal,
    tags_from_list,
    tags_to_list,
)
from .poller import NotFoundPolicy
from .status import read_path

# =============================================================================
# Tags
# =============================================================================


def _tag_keys(tags: Mapping[str, str] | Iterable[Mapping[str, str]] | None) -> set[str]:
    if not tags:
        return set()
    if isinstance(tags, Mapping):
        return set(tags)
    return {tag["Key"] for tag in tags}


def _tags_added(patch: dict[str, Any], state: dict[str, Any]) -> dict[str, Any] | None:
    # Tagging APIs reject an empty tag set
    return {"Tags": patch["Tags"]} if patch.get("Tags") else None


def _removed_tag_keys(patch: dict[str, Any], current: Any) -> list[str]:
    """Keys tagged remotely that the desired tags no longer carry."""
    return sorted(_tag_keys(current) - _tag_keys(patch.get("Tags")))


# =============================================================================
# Network Firewall rule group
# =============================================================================

NETWORK_FIREWALL_RULE_GROUP = "aws_networkfirewall_rule_group"

RULE_GROUP_STATUS_ACTIVE = "ACTIVE"
RULE_GROUP_STATUS_DELETING = "DELETING"

# Sent on every UpdateRuleGroup; a field left out is cleared
_RULE_GROUP_RESENT = ("Type", "Description", "EncryptionConfiguration")


def _rule_group_update(patch: dict[str, Any], state: dict[str, Any]) -> dict[str, Any]:
    """UpdateRuleGroup needs the type and exactly one of Rules or RuleGroup.

    Rules takes precedence when both are configured since RuleGroup is
    derived from it. When neither changed, the current RuleGroup is resent
    so other attributes (description) can still be updated. Type,
    description and encryption settings not in the patch are resent from
    the current state.
    """
    body = dict(patch)
    current = read_path(state, "RuleGroupResponse") or {}
    for key in _RULE_GROUP_RESENT:
        if key not in body and current.get(key) is not None:
            body[key] = current[key]
    if "Rules" in body:
        body.pop("RuleGroup", None)
    elif "RuleGroup" not in body:
        body["RuleGroup"] = read_path(state, "RuleGroup")
    return body


def _rule_group_tags_removed(patch: dict[str, Any], state: dict[str, Any]) -> dict[str, Any] | None:
    keys = _removed_tag_keys(patch, read_path(state, "RuleGroupResponse.Tags"))
    return {"TagKeys": keys} if keys else None


rule_group = ResourceDescriptor(
    type_name=NETWORK_FIREWALL_RULE_GROUP,
    status_path="RuleGroupResponse.RuleGroupStatus",
    statuses=frozenset({RULE_GROUP_STATUS_ACTIVE, RULE_GROUP_STATUS_DELETING}),
    waits={
        Operation.CREATE: WaitCondition(
            target=frozenset({RULE_GROUP_STATUS_ACTIVE}), not_found=NotFoundPolicy.WAIT
        ),
        Operation.UPDATE: WaitCondition(target=frozenset({RULE_GROUP_STATUS_ACTIVE})),
        Operation.DELETE: WaitCondition(not_found=NotFoundPolicy.CONVERGE),
    },
    field_map=FieldMap(
        [
            FieldMapping("name", "RuleGroupName", state_path="RuleGroupResponse.RuleGroupName"),
            FieldMapping("type", "Type", state_path="RuleGroupResponse.Type"),
            FieldMapping("capacity", "Capacity", state_path="RuleGroupResponse.Capacity"),
            FieldMapping(
                "description", "Description", state_path="RuleGroupResponse.Description"
            ),
            FieldMapping("rule_group", "RuleGroup"),
            FieldMapping("rules", "Rules", write_only=True),
            FieldMapping(
                "encryption_configuration",
                "EncryptionConfiguration",
                state_path="RuleGroupResponse.EncryptionConfiguration",
            ),
            FieldMapping(
                "tags",
                "Tags",
                expand=tags_to_list,
                flatten=tags_from_list,
                state_path="RuleGroupResponse.Tags",
                compare=tags_equal,
            ),
            FieldMapping("arn", "RuleGroupResponse.RuleGroupArn", computed=True),
            FieldMapping("update_token", "UpdateToken", computed=True),
        ]
    ),
    replace_on_change=frozenset({"name", "type", "capacity"}),
    update_groups={
        "default": frozenset({"description", "rule_group", "rules", "encryption_configuration"}),
        "tags": frozenset({"tags"}),
    },
    delete_retry_messages=("Unable to delete the object because it is still in use",),
    timeouts={Operation.DELETE: 600},
)

rule_group_operations = AwsOperations(
    service="network-firewall",
    create=AwsCall("create_rule_group"),
    create_id_path="RuleGroupResponse.RuleGroupArn",
    describe=AwsCall("describe_rule_group", id_param="RuleGroupArn"),
    modify={
        "default": AwsCall(
            "update_rule_group",
            id_param="RuleGroupArn",
            token_param="UpdateToken",
            token_path="UpdateToken",
            transform=_rule_group_update,
        ),
        "tags": (
            AwsCall("tag_resource", id_param="ResourceArn", transform=_tags_added),
            AwsCall("untag_resource", id_param="ResourceArn", transform=_rule_group_tags_removed),
        ),
    },
    delete=AwsCall("delete_rule_group", id_param="RuleGroupArn"),
)


# =============================================================================
# EC2 Fleet
# =============================================================================

EC2_FLEET = "aws_ec2_fleet"

FLEET_STATE_SUBMITTED = "submitted"
FLEET_STATE_ACTIVE = "active"
FLEET_STATE_MODIFYING = "modifying"
FLEET_STATE_FAILED = "failed"
FLEET_STATE_DELETED = "deleted"
FLEET_STATE_DELETED_RUNNING = "deleted_running"
FLEET_STATE_DELETED_TERMINATING = "deleted_terminating"

FLEET_DELETED_STATES = frozenset(
    {FLEET_STATE_DELETED, FLEET_STATE_DELETED_RUNNING, FLEET_STATE_DELETED_TERMINATING}
)


def _fleet_create_request(request: dict[str, Any], state: dict[str, Any]) -> dict[str, Any]:
    """CreateFleet takes tags as a TagSpecification for the fleet itself."""
    body = dict(request)
    tags = body.pop("Tags", None)
    if tags:
        body["TagSpecifications"] = [{"ResourceType": "fleet", "Tags": tags}]
    return body


def _fleet_tags_removed(patch: dict[str, Any], state: dict[str, Any]) -> dict[str, Any] | None:
    keys = _removed_tag_keys(patch, state.get("Tags"))
    return {"Tags": [{"Key": key} for key in keys]} if keys else None


fleet = ResourceDescriptor(
    type_name=EC2_FLEET,
    status_path="FleetState",
    statuses=frozenset(
        {
            FLEET_STATE_SUBMITTED,
            FLEET_STATE_ACTIVE,
            FLEET_STATE_MODIFYING,
            FLEET_STATE_FAILED,
        }
        | FLEET_DELETED_STATES
    ),
    waits={
        Operation.CREATE: WaitCondition(
            target=frozenset({FLEET_STATE_ACTIVE}),
            failure=frozenset({FLEET_STATE_FAILED}),
            not_found=NotFoundPolicy.WAIT,
        ),
        Operation.UPDATE: WaitCondition(
            target=frozenset({FLEET_STATE_ACTIVE}),
            failure=frozenset({FLEET_STATE_FAILED}),
        ),
        Operation.DELETE: WaitCondition(
            target=FLEET_DELETED_STATES,
            not_found=NotFoundPolicy.CONVERGE,
        ),
    },
    # EC2 fills option blocks with defaults (instance pools, interruption
    # behavior, fleet-level capacity types) the configuration never sets
    field_map=FieldMap(
        [
            FieldMapping("type", "Type"),
            FieldMapping("launch_template_config", "LaunchTemplateConfigs", compare=subset_of),
            FieldMapping(
                "target_capacity_specification", "TargetCapacitySpecification", compare=subset_of
            ),
            FieldMapping("excess_capacity_termination_policy", "ExcessCapacityTerminationPolicy"),
            FieldMapping("terminate_instances_with_expiration", "TerminateInstancesWithExpiration"),
            FieldMapping("replace_unhealthy_instances", "ReplaceUnhealthyInstances"),
            FieldMapping("on_demand_options", "OnDemandOptions", compare=subset_of),
            FieldMapping("spot_options", "SpotOptions", compare=subset_of),
            FieldMapping("valid_from", "ValidFrom"),
            FieldMapping("valid_until", "ValidUntil"),
            FieldMapping("context", "Context"),
            FieldMapping(
                "tags", "Tags", expand=tags_to_list, flatten=tags_from_list, compare=tags_equal
            ),
            FieldMapping("id", "FleetId", computed=True),
            FieldMapping("fleet_state", "FleetState", computed=True),
        ]
    ),
    replace_on_change=frozenset(
        {
            "type",
            "terminate_instances_with_expiration",
            "replace_unhealthy_instances",
            "on_demand_options",
            "spot_options",
            "valid_from",
            "valid_until",
        }
    ),
    update_groups={
        "capacity": frozenset(
            {
                "launch_template_config",
                "target_capacity_specification",
                "excess_capacity_termination_policy",
            }
        ),
        "context": frozenset({"context"}),
        "tags": frozenset({"tags"}),
    },
    # describe_fleets keeps returning deleted fleets for a while
    gone_statuses=FLEET_DELETED_STATES,
    timeouts={Operation.CREATE: 600, Operation.UPDATE: 600, Operation.DELETE: 600},
)

fleet_operations = AwsOperations(
    service="ec2",
    create=AwsCall("create_fleet", transform=_fleet_create_request),
    create_id_path="FleetId",
    describe=AwsCall("describe_fleets", id_param="FleetIds", id_as_list=True),
    describe_result_path="Fleets.0",
    modify={
        "capacity": AwsCall("modify_fleet", id_param="FleetId"),
        "context": AwsCall("modify_fleet", id_param="FleetId"),
        "tags": (
            AwsCall("create_tags", id_param="Resources", id_as_list=True, transform=_tags_added),
            AwsCall(
                "delete_tags", id_param="Resources", id_as_list=True, transform=_fleet_tags_removed
            ),
        ),
    },
    delete=AwsCall(
        "delete_fleets",
        id_param="FleetIds",
        id_as_list=True,
        params={"TerminateInstances": True},
    ),
    not_found_codes=frozenset({"InvalidFleetId.NotFound", "InvalidFleetId.Malformed"}),
)


# =============================================================================
# Amazon MQ broker
# =============================================================================

MQ_BROKER = "aws_mq_broker"

BROKER_STATE_CREATION_IN_PROGRESS = "CREATION_IN_PROGRESS"
BROKER_STATE_CREATION_FAILED = "CREATION_FAILED"
BROKER_STATE_DELETION_IN_PROGRESS = "DELETION_IN_PROGRESS"
BROKER_STATE_RUNNING = "RUNNING"
BROKER_STATE_REBOOT_IN_PROGRESS = "REBOOT_IN_PROGRESS"
BROKER_STATE_CRITICAL_ACTION_REQUIRED = "CRITICAL_ACTION_REQUIRED"
BROKER_STATE_REPLICA = "REPLICA"

USER_PENDING_DELETE = "DELETE"


def _broker_users_upserted(patch: dict[str, Any], state: dict[str, Any]) -> list[dict[str, Any]]:
    # One UpdateUser per desired user; CreateUser when the broker lacks it
    return [dict(user) for user in patch.get("Users") or []]


def _broker_users_removed(patch: dict[str, Any], state: dict[str, Any]) -> list[dict[str, Any]]:
    wanted = {user.get("Username") for user in patch.get("Users") or []}
    return [
        {"Username": user["Username"]}
        for user in state.get("Users") or []
        if user["Username"] not in wanted and user.get("PendingChange") != USER_PENDING_DELETE
    ]


def _broker_tags_removed(patch: dict[str, Any], state: dict[str, Any]) -> dict[str, Any] | None:
    keys = _removed_tag_keys(patch, state.get("Tags"))
    return {"TagKeys": keys} if keys else None


broker = ResourceDescriptor(
    type_name=MQ_BROKER,
    status_path="BrokerState",
    statuses=frozenset(
        {
            BROKER_STATE_CREATION_IN_PROGRESS,
            BROKER_STATE_CREATION_FAILED,
            BROKER_STATE_DELETION_IN_PROGRESS,
            BROKER_STATE_RUNNING,
            BROKER_STATE_REBOOT_IN_PROGRESS,
            BROKER_STATE_CRITICAL_ACTION_REQUIRED,
            BROKER_STATE_REPLICA,
        }
    ),
    waits={
        Operation.CREATE: WaitCondition(
            target=frozenset({BROKER_STATE_RUNNING, BROKER_STATE_REPLICA}),
            failure=frozenset({BROKER_STATE_CREATION_FAILED}),
            not_found=NotFoundPolicy.WAIT,
        ),
        Operation.UPDATE: WaitCondition(
            target=frozenset({BROKER_STATE_RUNNING, BROKER_STATE_REPLICA}),
            failure=frozenset({BROKER_STATE_CRITICAL_ACTION_REQUIRED}),
        ),
        Operation.DELETE: WaitCondition(not_found=NotFoundPolicy.CONVERGE),
    },
    field_map=FieldMap(
        [
            FieldMapping("broker_name", "BrokerName"),
            FieldMapping("engine_type", "EngineType"),
            FieldMapping("engine_version", "EngineVersion"),
            FieldMapping("host_instance_type", "HostInstanceType"),
            FieldMapping("deployment_mode", "DeploymentMode"),
            FieldMapping("publicly_accessible", "PubliclyAccessible"),
            FieldMapping("auto_minor_version_upgrade", "AutoMinorVersionUpgrade"),
            FieldMapping("security_groups", "SecurityGroups"),
            FieldMapping("subnet_ids", "SubnetIds"),
            FieldMapping("users", "Users", write_only=True),
            FieldMapping("tags", "Tags", compare=tags_equal),
            FieldMapping("arn", "BrokerArn", computed=True),
            FieldMapping("broker_state", "BrokerState", computed=True),
        ]
    ),
    replace_on_change=frozenset(
        {"broker_name", "engine_type", "deployment_mode", "publicly_accessible", "subnet_ids"}
    ),
    update_groups={
        "default": frozenset(
            {
                "engine_version",
                "host_instance_type",
                "auto_minor_version_upgrade",
                "security_groups",
            }
        ),
        # UpdateBroker has no Users member; users are sub-objects of the broker
        "users": frozenset({"users"}),
        "tags": frozenset({"tags"}),
    },
    timeouts={Operation.CREATE: 1800, Operation.UPDATE: 1800, Operation.DELETE: 1800},
)

broker_operations = AwsOperations(
    service="mq",
    create=AwsCall("create_broker"),
    create_id_path="BrokerId",
    describe=AwsCall("describe_broker", id_param="BrokerId"),
    modify={
        "default": AwsCall("update_broker", id_param="BrokerId"),
        "users": (
            AwsCall(
                "update_user",
                id_param="BrokerId",
                transform=_broker_users_upserted,
                fallback_method="create_user",
            ),
            AwsCall("delete_user", id_param="BrokerId", transform=_broker_users_removed),
        ),
        "tags": (
            AwsCall(
                "create_tags",
                id_param="ResourceArn",
                id_path="BrokerArn",
                transform=_tags_added,
            ),
            AwsCall(
                "delete_tags",
                id_param="ResourceArn",
                id_path="BrokerArn",
                transform=_broker_tags_removed,
            ),
        ),
    },
    delete=AwsCall("delete_broker", id_param="BrokerId"),
)


# =============================================================================
# Classic ELB cookie stickiness policy
# =============================================================================

LB_COOKIE_STICKINESS_POLICY = "aws_lb_cookie_stickiness_policy"

COOKIE_EXPIRATION_ATTRIBUTE = "CookieExpirationPeriod"


def parse_stickiness_policy_id(identifier: str) -> tuple[str, int, str]:
    """"<load balancer>:<port>:<policy name>" -> its three parts."""
    parts = identifier.split(":")
    if len(parts) != 3 or not all(parts) or not parts[1].isdigit():
        raise RemoteError(
            ErrorKind.VALIDATION_FAILED,
            f"unexpected format for ID ({identifier}), expected LBNAME:PORT:POLICYNAME",
        )
    return parts[0], int(parts[1]), parts[2]


class CookieStickinessPolicyHandler(AwsHandler):
    """Duration-based cookie stickiness on one listener of a classic ELB.

    The policy has no status of its own. It exists once it is defined on the
    load balancer and set on the listener; either half missing is NotFound.
    Setting the listener's policies replaces any policy set there before.
    """

    service = "elb"
    not_found_codes = frozenset({"PolicyNotFound", "LoadBalancerNotFound"})

    def create(self, client: Any, request: dict[str, Any]) -> str:
        missing = [
            key
            for key in ("LoadBalancerName", "LoadBalancerPort", "PolicyName")
            if request.get(key) in (None, "")
        ]
        if missing:
            raise RemoteError(
                ErrorKind.VALIDATION_FAILED, f"missing required attributes: {missing}"
            )

        lb_name = request["LoadBalancerName"]
        port = int(request["LoadBalancerPort"])
        name = request["PolicyName"]

        params: dict[str, Any] = {"LoadBalancerName": lb_name, "PolicyName": name}
        # 0 means a session cookie: no expiration is sent
        if request.get(COOKIE_EXPIRATION_ATTRIBUTE):
            params[COOKIE_EXPIRATION_ATTRIBUTE] = int(request[COOKIE_EXPIRATION_ATTRIBUTE])
        client.create_lb_cookie_stickiness_policy(**params)
        client.set_load_balancer_policies_of_listener(
            LoadBalancerName=lb_name, LoadBalancerPort=port, PolicyNames=[name]
        )
        return f"{lb_name}:{port}:{name}"

    def describe(self, client: Any, identifier: str) -> dict[str, Any]:
        lb_name, port, name = parse_stickiness_policy_id(identifier)

        response = client.describe_load_balancer_policies(
            LoadBalancerName=lb_name, PolicyNames=[name]
        )
        policies = response.get("PolicyDescriptions") or []
        if not policies:
            return {}

        response = client.describe_load_balancers(LoadBalancerNames=[lb_name])
        descriptions = response.get("LoadBalancerDescriptions") or [{}]
        attached = any(
            read_path(listener, "Listener.LoadBalancerPort") == port
            and name in (listener.get("PolicyNames") or [])
            for listener in descriptions[0].get("ListenerDescriptions") or []
        )
        if not attached:
            return {}

        attributes = {
            attribute["AttributeName"]: attribute.get("AttributeValue")
            for attribute in policies[0].get("PolicyAttributeDescriptions") or []
        }
        return {
            "LoadBalancerName": lb_name,
            "LoadBalancerPort": port,
            "PolicyName": name,
            COOKIE_EXPIRATION_ATTRIBUTE: int(attributes.get(COOKIE_EXPIRATION_ATTRIBUTE) or 0),
        }

    def delete(self, client: Any, identifier: str) -> None:
        lb_name, port, name = parse_stickiness_policy_id(identifier)
        # A policy still set on a listener cannot be deleted
        client.set_load_balancer_policies_of_listener(
            LoadBalancerName=lb_name, LoadBalancerPort=port, PolicyNames=[]
        )
        client.delete_load_balancer_policy(LoadBalancerName=lb_name, PolicyName=name)


lb_cookie_stickiness_policy = ResourceDescriptor(
    type_name=LB_COOKIE_STICKINESS_POLICY,
    # Create has no wait condition: the policy is usable once both calls return
    waits={Operation.DELETE: WaitCondition(not_found=NotFoundPolicy.CONVERGE)},
    field_map=FieldMap(
        [
            FieldMapping("name", "PolicyName"),
            FieldMapping("load_balancer", "LoadBalancerName"),
            FieldMapping("lb_port", "LoadBalancerPort"),
            FieldMapping("cookie_expiration_period", COOKIE_EXPIRATION_ATTRIBUTE),
        ]
    ),
    replace_on_change=frozenset(
        {"name", "load_balancer", "lb_port", "cookie_expiration_period"}
    ),
)


# =============================================================================
# Cloud Control API resource lookup
# =============================================================================

CLOUDCONTROL_RESOURCE = "aws_cloudcontrolapi_resource"


def parse_cloudcontrol_id(identifier: str) -> tuple[str, str]:
    """"<TypeName>/<Identifier>" -> its two parts.

    Type names never contain a slash; resource identifiers may
    (``AWS::Logs::LogGroup//aws/lambda/fn``).
    """
    type_name, _, resource_id = identifier.partition("/")
    if not type_name or not resource_id:
        raise RemoteError(
            ErrorKind.VALIDATION_FAILED,
            f"unexpected format for ID ({identifier}), expected TYPENAME/IDENTIFIER",
        )
    return type_name, resource_id


class CloudControlResourceHandler(AwsHandler):
    """Reads any resource type Cloud Control supports, by type and identifier."""

    service = "cloudcontrol"

    def describe(self, client: Any, identifier: str) -> dict[str, Any]:
        type_name, resource_id = parse_cloudcontrol_id(identifier)
        response = client.get_resource(TypeName=type_name, Identifier=resource_id)
        description = response.get("ResourceDescription") or {}
        try:
            properties = json.loads(description.get("Properties") or "{}")
        except ValueError as e:
            raise RemoteError(
                ErrorKind.UNKNOWN, f"properties of {identifier} are not valid JSON: {e}"
            ) from e
        return {
            "TypeName": response.get("TypeName") or type_name,
            "Identifier": description.get("Identifier") or resource_id,
            "Properties": properties,
        }


cloudcontrol_resource = ResourceDescriptor(
    type_name=CLOUDCONTROL_RESOURCE,
    field_map=FieldMap(
        [
            FieldMapping("type_name", "TypeName", computed=True),
            FieldMapping("identifier", "Identifier", computed=True),
            FieldMapping("properties", "Properties", computed=True),
        ]
    ),
    read_only=True,
)


# =============================================================================
# Azure Resource Manager generic resource
# =============================================================================

ARM_GENERIC_RESOURCE = "azurerm_generic_resource"

ARM_STATE_ACCEPTED = "Accepted"
ARM_STATE_CREATING = "Creating"
ARM_STATE_UPDATING = "Updating"
ARM_STATE_PROVISIONING = "Provisioning"
ARM_STATE_DELETING = "Deleting"
ARM_STATE_SUCCEEDED = "Succeeded"
ARM_STATE_FAILED = "Failed"
ARM_STATE_CANCELED = "Canceled"

generic_resource = ResourceDescriptor(
    type_name=ARM_GENERIC_RESOURCE,
    status_path="properties.provisioningState",
    statuses=frozenset(
        {
            ARM_STATE_ACCEPTED,
            ARM_STATE_CREATING,
            ARM_STATE_UPDATING,
            ARM_STATE_PROVISIONING,
            ARM_STATE_DELETING,
            ARM_STATE_SUCCEEDED,
            ARM_STATE_FAILED,
            ARM_STATE_CANCELED,
        }
    ),
    waits={
        Operation.CREATE: WaitCondition(
            target=frozenset({ARM_STATE_SUCCEEDED}),
            failure=frozenset({ARM_STATE_FAILED, ARM_STATE_CANCELED}),
            not_found=NotFoundPolicy.WAIT,
        ),
        Operation.UPDATE: WaitCondition(
            target=frozenset({ARM_STATE_SUCCEEDED}),
            failure=frozenset({ARM_STATE_FAILED, ARM_STATE_CANCELED}),
        ),
        Operation.DELETE: WaitCondition(not_found=NotFoundPolicy.CONVERGE),
    },
    field_map=FieldMap(
        [
            FieldMapping("id", "id"),
            FieldMapping("location", "location"),
            FieldMapping("kind", "kind"),
            FieldMapping("sku", "sku", compare=subset_of),
            FieldMapping("properties", "properties", compare=subset_of),
            FieldMapping("tags", "tags"),
            FieldMapping("name", "name", computed=True),
            FieldMapping("resource_type", "type", computed=True),
            FieldMapping(
                "provisioning_state", "properties.provisioningState", computed=True
            ),
        ]
    ),
    replace_on_change=frozenset({"id", "location", "kind"}),
    update_groups={"default": frozenset({"sku", "properties", "tags"})},
)

# API versions for generic ARM resources, keyed by provider resource type
ARM_API_VERSIONS: dict[str, str] = {
    "Microsoft.Network/virtualNetworks": "2023-09-01",
    "Microsoft.Network/azureFirewalls": "2023-09-01",
    "Microsoft.Network/firewallPolicies": "2023-09-01",
    "Microsoft.OperationalInsights/workspaces": "2022-10-01",
    "Microsoft.ManagedIdentity/userAssignedIdentities": "2023-01-31",
    "Microsoft.Storage/storageAccounts": "2023-01-01",
    "Microsoft.KeyVault/vaults": "2023-07-01",
}


AWS_OPERATIONS: dict[str, AwsOperations | AwsHandler] = {
    NETWORK_FIREWALL_RULE_GROUP: rule_group_operations,
    EC2_FLEET: fleet_operations,
    MQ_BROKER: broker_operations,
    LB_COOKIE_STICKINESS_POLICY: CookieStickinessPolicyHandler(),
    CLOUDCONTROL_RESOURCE: CloudControlResourceHandler(),
}

BUILTIN_DESCRIPTORS: tuple[ResourceDescriptor, ...] = (
    rule_group,
    fleet,
    broker,
    lb_cookie_stickiness_policy,
    cloudcontrol_resource,
    generic_resource,
)


def default_registry() -> ResourceRegistry:
    """Registry of every built-in resource type."""
    return build_registry(*BUILTIN_DESCRIPTORS)
