"""Tests for the boto3-backed Remote Client."""

from unittest.mock import MagicMock

import boto3
import pytest
from botocore.exceptions import ClientError, EndpointConnectionError
from botocore.stub import Stubber

from converge.clients.aws import AwsClient, AwsHandler, classify_client_error
from converge.errors import ErrorKind, RemoteError
from converge.resources import (
    AWS_OPERATIONS,
    CLOUDCONTROL_RESOURCE,
    EC2_FLEET,
    LB_COOKIE_STICKINESS_POLICY,
    MQ_BROKER,
    NETWORK_FIREWALL_RULE_GROUP,
    broker,
)

RULE_GROUP_ARN = "arn:aws:network-firewall:eu-west-1:123456789012:stateful-rulegroup/inspection"
BROKER_ARN = "arn:aws:mq:eu-west-1:123456789012:broker:orders:b-1234"
UPDATE_TOKEN = "2b1e0b6c-6d0e-4b8e-9a5d-0f3c1d2e3f40"


def client_error(code: str, message: str = "boom", status: int = 400) -> ClientError:
    return ClientError(
        {
            "Error": {"Code": code, "Message": message},
            "ResponseMetadata": {"HTTPStatusCode": status},
        },
        "Operation",
    )


@pytest.fixture
def service() -> MagicMock:
    return MagicMock()


@pytest.fixture
def session(service: MagicMock) -> MagicMock:
    session = MagicMock()
    session.client.return_value = service
    return session


@pytest.fixture
def client(session: MagicMock) -> AwsClient:
    return AwsClient(AWS_OPERATIONS, region="eu-west-1", session=session)


class TestClassifyClientError:
    """Tests for classify_client_error."""

    @pytest.mark.parametrize(
        "code,status,kind",
        [
            ("ResourceNotFoundException", 400, ErrorKind.NOT_FOUND),
            ("InvalidFleetId.NotFound", 400, ErrorKind.NOT_FOUND),
            ("ThrottlingException", 400, ErrorKind.THROTTLED),
            ("RequestLimitExceeded", 503, ErrorKind.THROTTLED),
            ("InternalServerError", 500, ErrorKind.SERVER_ERROR),
            ("SomethingNew", 503, ErrorKind.SERVER_ERROR),
            ("InvalidOperationException", 400, ErrorKind.CONFLICT),
            ("AccessDeniedException", 400, ErrorKind.ACCESS_DENIED),
            ("InvalidRequestException", 400, ErrorKind.VALIDATION_FAILED),
            ("InvalidParameterValue", 400, ErrorKind.VALIDATION_FAILED),
            ("SomethingNew", 404, ErrorKind.NOT_FOUND),
            ("SomethingNew", 200, ErrorKind.UNKNOWN),
        ],
    )
    def test_kinds(self, code: str, status: int, kind: ErrorKind) -> None:
        """Test error codes and HTTP statuses map onto error kinds."""
        assert classify_client_error(client_error(code, status=status)).kind is kind

    def test_type_specific_not_found_codes(self) -> None:
        """Test resource types can declare extra NotFound codes."""
        error = client_error("InvalidFleetId.Malformed")

        assert classify_client_error(error).kind is ErrorKind.VALIDATION_FAILED
        assert (
            classify_client_error(error, frozenset({"InvalidFleetId.Malformed"})).kind
            is ErrorKind.NOT_FOUND
        )

    def test_keeps_code_and_message(self) -> None:
        """Test the AWS code and message are preserved."""
        error = classify_client_error(client_error("ConflictException", "in use"))

        assert error.code == "ConflictException"
        assert error.message == "in use"
        assert str(error) == "ConflictException: in use"


class TestAwsClient:
    """Tests for AwsClient."""

    def test_create_returns_identifier(self, client, session, service) -> None:
        """Test the identifier is read from the create response."""
        service.create_rule_group.return_value = {
            "RuleGroupResponse": {"RuleGroupArn": RULE_GROUP_ARN},
            "ResponseMetadata": {"HTTPStatusCode": 200},
        }

        identifier = client.create(
            NETWORK_FIREWALL_RULE_GROUP, {"RuleGroupName": "inspection", "Capacity": 100}
        )

        assert identifier == RULE_GROUP_ARN
        service.create_rule_group.assert_called_once_with(
            RuleGroupName="inspection", Capacity=100
        )
        assert session.client.call_args.kwargs["service_name"] == "network-firewall"
        assert session.client.call_args.kwargs["region_name"] == "eu-west-1"

    def test_sdk_retries_disabled(self, client, session, service) -> None:
        """Test botocore makes a single attempt per call."""
        service.describe_broker.return_value = {"BrokerState": "RUNNING"}

        client.describe(MQ_BROKER, "b-1")

        config = session.client.call_args.kwargs["config"]
        assert config.retries["max_attempts"] == 1

    def test_create_without_identifier(self, client, service) -> None:
        """Test a create response without identifier is an error."""
        service.create_fleet.return_value = {"Errors": [{"ErrorCode": "x"}]}

        with pytest.raises(RemoteError) as exc_info:
            client.create(EC2_FLEET, {})

        assert exc_info.value.kind is ErrorKind.UNKNOWN

    def test_service_client_cached(self, client, session, service) -> None:
        """Test one boto3 client is created per service."""
        service.describe_broker.return_value = {"BrokerState": "RUNNING"}

        client.describe(MQ_BROKER, "b-1")
        client.describe(MQ_BROKER, "b-1")

        assert session.client.call_count == 1

    def test_describe_strips_metadata(self, client, service) -> None:
        """Test response metadata is not part of the remote state."""
        service.describe_broker.return_value = {
            "BrokerId": "b-1",
            "BrokerState": "RUNNING",
            "ResponseMetadata": {"RequestId": "r"},
        }

        assert client.describe(MQ_BROKER, "b-1") == {"BrokerId": "b-1", "BrokerState": "RUNNING"}
        service.describe_broker.assert_called_once_with(BrokerId="b-1")

    def test_describe_list_shaped(self, client, service) -> None:
        """Test list-shaped describe APIs return the first element."""
        service.describe_fleets.return_value = {
            "Fleets": [{"FleetId": "fleet-1", "FleetState": "active"}]
        }

        state = client.describe(EC2_FLEET, "fleet-1")

        assert state == {"FleetId": "fleet-1", "FleetState": "active"}
        service.describe_fleets.assert_called_once_with(FleetIds=["fleet-1"])

    def test_describe_list_shaped_empty(self, client, service) -> None:
        """Test an empty list answers with an empty state."""
        service.describe_fleets.return_value = {"Fleets": []}

        assert client.describe(EC2_FLEET, "fleet-1") == {}

    def test_describe_not_found(self, client, service) -> None:
        """Test ClientError is translated at the boundary."""
        service.describe_fleets.side_effect = client_error("InvalidFleetId.Malformed")

        with pytest.raises(RemoteError) as exc_info:
            client.describe(EC2_FLEET, "fleet-1")

        assert exc_info.value.kind is ErrorKind.NOT_FOUND
        assert isinstance(exc_info.value.__cause__, ClientError)

    def test_connection_error_is_timeout(self, client, service) -> None:
        """Test connection failures are retryable."""
        service.describe_broker.side_effect = EndpointConnectionError(
            endpoint_url="https://mq.eu-west-1.amazonaws.com"
        )

        with pytest.raises(RemoteError) as exc_info:
            client.describe(MQ_BROKER, "b-1")

        assert exc_info.value.kind is ErrorKind.TIMEOUT
        assert exc_info.value.retryable

    def test_modify_uses_token_and_current_rules(self, client, service) -> None:
        """Test rule group updates carry the update token and rule definition."""
        service.describe_rule_group.return_value = {
            "UpdateToken": "token-1",
            "RuleGroup": {"RulesSource": {"RulesString": "pass ip any any -> any any"}},
            "RuleGroupResponse": {"RuleGroupArn": RULE_GROUP_ARN, "Type": "STATEFUL"},
        }

        client.modify(
            NETWORK_FIREWALL_RULE_GROUP,
            RULE_GROUP_ARN,
            {"Description": "updated"},
            group="default",
        )

        service.update_rule_group.assert_called_once_with(
            Description="updated",
            Type="STATEFUL",
            RuleGroup={"RulesSource": {"RulesString": "pass ip any any -> any any"}},
            RuleGroupArn=RULE_GROUP_ARN,
            UpdateToken="token-1",
        )

    def test_modify_identifier_from_state(self, client, service) -> None:
        """Test tag calls address the broker by ARN read from its state."""
        service.describe_broker.return_value = {"BrokerArn": "arn:aws:mq:b-1"}

        client.modify(MQ_BROKER, "b-1", {"Tags": {"env": "prod"}}, group="tags")

        service.create_tags.assert_called_once_with(
            Tags={"env": "prod"}, ResourceArn="arn:aws:mq:b-1"
        )
        service.delete_tags.assert_not_called()
        service.describe_broker.assert_called_once_with(BrokerId="b-1")

    def test_modify_without_state_lookup(self, client, service) -> None:
        """Test plain modify calls do not describe first."""
        client.modify(
            EC2_FLEET,
            "fleet-1",
            {"TargetCapacitySpecification": {"TotalTargetCapacity": 4}},
            group="capacity",
        )

        service.describe_fleets.assert_not_called()
        service.modify_fleet.assert_called_once_with(
            TargetCapacitySpecification={"TotalTargetCapacity": 4}, FleetId="fleet-1"
        )

    def test_modify_unknown_group(self, client) -> None:
        """Test a group without modify call is rejected."""
        with pytest.raises(RemoteError) as exc_info:
            client.modify(EC2_FLEET, "fleet-1", {}, group="nope")

        assert exc_info.value.kind is ErrorKind.VALIDATION_FAILED

    def test_delete_static_params(self, client, service) -> None:
        """Test delete adds the call's static parameters."""
        client.delete(EC2_FLEET, "fleet-1")

        service.delete_fleets.assert_called_once_with(
            TerminateInstances=True, FleetIds=["fleet-1"]
        )

    def test_unsupported_type(self, client) -> None:
        """Test types without an operation table are rejected."""
        with pytest.raises(RemoteError) as exc_info:
            client.describe("aws_nope", "x")

        assert exc_info.value.kind is ErrorKind.VALIDATION_FAILED

    def test_handler_types_dispatched(self, session) -> None:
        """Test handler types receive the service client and skip the tables."""
        handler = MagicMock(spec=AwsHandler)
        handler.service = "elb"
        handler.not_found_codes = frozenset({"PolicyNotFound"})
        handler.describe.side_effect = client_error("PolicyNotFound")
        client = AwsClient({"aws_custom": handler}, session=session)

        with pytest.raises(RemoteError) as exc_info:
            client.describe("aws_custom", "web:80:sticky")

        assert exc_info.value.kind is ErrorKind.NOT_FOUND
        handler.describe.assert_called_once_with(session.client.return_value, "web:80:sticky")
        assert session.client.call_args.kwargs["service_name"] == "elb"


def stubbed(service_name: str) -> tuple[AwsClient, Stubber]:
    """AwsClient over a real boto3 client whose requests are validated."""
    boto_client = boto3.session.Session(
        aws_access_key_id="testing",
        aws_secret_access_key="testing",
        region_name="eu-west-1",
    ).client(service_name)
    session = MagicMock()
    session.client.return_value = boto_client
    return AwsClient(AWS_OPERATIONS, region="eu-west-1", session=session), Stubber(boto_client)


def rule_group_description(**response_fields) -> dict:
    return {
        "UpdateToken": UPDATE_TOKEN,
        "RuleGroup": {"RulesSource": {"RulesString": "pass ip any any -> any any (sid:1;)"}},
        "RuleGroupResponse": {
            "RuleGroupArn": RULE_GROUP_ARN,
            "RuleGroupName": "inspection",
            "RuleGroupId": "8f7b9d2c-1a2b-4c3d-9e8f-0a1b2c3d4e5f",
            "Type": "STATEFUL",
            **response_fields,
        },
    }


class TestServiceModels:
    """Requests checked against the botocore service models."""

    def test_broker_users_updated_created_and_deleted(self) -> None:
        """Test user changes go through the user APIs, not UpdateBroker."""
        client, stubber = stubbed("mq")
        users = [
            {"Username": "admin", "Password": "correct-horse-battery", "ConsoleAccess": True},
            {"Username": "app", "Password": "staple-staple-staple", "Groups": ["writers"]},
        ]
        stubber.add_response(
            "describe_broker",
            {
                "BrokerArn": BROKER_ARN,
                "BrokerState": "RUNNING",
                "Users": [{"Username": "admin"}, {"Username": "old"}],
            },
            {"BrokerId": "b-1234"},
        )
        stubber.add_response("update_user", {}, {"BrokerId": "b-1234", **users[0]})
        stubber.add_client_error(
            "update_user",
            service_error_code="NotFoundException",
            http_status_code=404,
            expected_params={"BrokerId": "b-1234", **users[1]},
        )
        stubber.add_response("create_user", {}, {"BrokerId": "b-1234", **users[1]})
        stubber.add_response("delete_user", {}, {"BrokerId": "b-1234", "Username": "old"})

        patch = broker.field_map.expand({"users": users})
        with stubber:
            for group in broker.group_changes(["users"]):
                client.modify(MQ_BROKER, "b-1234", patch, group=group)

        stubber.assert_no_pending_responses()

    def test_broker_tags_removed(self) -> None:
        """Test tags dropped from the configuration are deleted."""
        client, stubber = stubbed("mq")
        stubber.add_response(
            "describe_broker",
            {"BrokerArn": BROKER_ARN, "Tags": {"env": "dev", "team": "orders"}},
            {"BrokerId": "b-1234"},
        )
        stubber.add_response(
            "create_tags", {}, {"ResourceArn": BROKER_ARN, "Tags": {"env": "prod"}}
        )
        stubber.add_response("delete_tags", {}, {"ResourceArn": BROKER_ARN, "TagKeys": ["team"]})

        with stubber:
            client.modify(MQ_BROKER, "b-1234", {"Tags": {"env": "prod"}}, group="tags")

        stubber.assert_no_pending_responses()

    def test_rule_group_tags_removed(self) -> None:
        """Test removing every tag sends only an untag request."""
        client, stubber = stubbed("network-firewall")
        stubber.add_response(
            "describe_rule_group",
            rule_group_description(Tags=[{"Key": "env", "Value": "dev"}]),
            {"RuleGroupArn": RULE_GROUP_ARN},
        )
        stubber.add_response(
            "untag_resource", {}, {"ResourceArn": RULE_GROUP_ARN, "TagKeys": ["env"]}
        )

        with stubber:
            client.modify(NETWORK_FIREWALL_RULE_GROUP, RULE_GROUP_ARN, {"Tags": []}, group="tags")

        stubber.assert_no_pending_responses()

    def test_rule_group_update_keeps_settings(self) -> None:
        """Test a rules change resends type, description and encryption."""
        client, stubber = stubbed("network-firewall")
        encryption = {"Type": "AWS_OWNED_KMS_KEY"}
        description = rule_group_description(
            Description="inspection rules", EncryptionConfiguration=encryption
        )
        stubber.add_response(
            "describe_rule_group", description, {"RuleGroupArn": RULE_GROUP_ARN}
        )
        stubber.add_response(
            "update_rule_group",
            {key: description[key] for key in ("UpdateToken", "RuleGroupResponse")},
            {
                "RuleGroupArn": RULE_GROUP_ARN,
                "UpdateToken": UPDATE_TOKEN,
                "Rules": "drop tcp any any -> any 23 (sid:2;)",
                "Type": "STATEFUL",
                "Description": "inspection rules",
                "EncryptionConfiguration": encryption,
            },
        )

        with stubber:
            client.modify(
                NETWORK_FIREWALL_RULE_GROUP,
                RULE_GROUP_ARN,
                {"Rules": "drop tcp any any -> any 23 (sid:2;)"},
                group="default",
            )

        stubber.assert_no_pending_responses()

    def test_fleet_created_with_tag_specifications(self) -> None:
        """Test fleet tags are sent as a TagSpecification on create."""
        client, stubber = stubbed("ec2")
        launch_templates = [
            {"LaunchTemplateSpecification": {"LaunchTemplateId": "lt-0abc", "Version": "1"}}
        ]
        stubber.add_response(
            "create_fleet",
            {"FleetId": "fleet-1"},
            {
                "LaunchTemplateConfigs": launch_templates,
                "TargetCapacitySpecification": {"TotalTargetCapacity": 1},
                "TagSpecifications": [
                    {"ResourceType": "fleet", "Tags": [{"Key": "team", "Value": "network"}]}
                ],
            },
        )

        with stubber:
            identifier = client.create(
                EC2_FLEET,
                {
                    "LaunchTemplateConfigs": launch_templates,
                    "TargetCapacitySpecification": {"TotalTargetCapacity": 1},
                    "Tags": [{"Key": "team", "Value": "network"}],
                },
            )

        assert identifier == "fleet-1"
        stubber.assert_no_pending_responses()

    def test_fleet_tags_removed(self) -> None:
        """Test fleet tag removal deletes the keys by name."""
        client, stubber = stubbed("ec2")
        stubber.add_response(
            "describe_fleets",
            {
                "Fleets": [
                    {
                        "FleetId": "fleet-1",
                        "FleetState": "active",
                        "Tags": [{"Key": "team", "Value": "network"}],
                    }
                ]
            },
            {"FleetIds": ["fleet-1"]},
        )
        stubber.add_response(
            "delete_tags", {}, {"Resources": ["fleet-1"], "Tags": [{"Key": "team"}]}
        )

        with stubber:
            client.modify(EC2_FLEET, "fleet-1", {"Tags": []}, group="tags")

        stubber.assert_no_pending_responses()

    def test_fleet_launch_template_modified(self) -> None:
        """Test launch template changes are accepted by ModifyFleet."""
        client, stubber = stubbed("ec2")
        launch_templates = [
            {"LaunchTemplateSpecification": {"LaunchTemplateId": "lt-0abc", "Version": "2"}}
        ]
        stubber.add_response(
            "modify_fleet",
            {"Return": True},
            {"FleetId": "fleet-1", "LaunchTemplateConfigs": launch_templates},
        )

        with stubber:
            client.modify(
                EC2_FLEET, "fleet-1", {"LaunchTemplateConfigs": launch_templates}, group="capacity"
            )

        stubber.assert_no_pending_responses()

    def test_stickiness_policy_lifecycle(self) -> None:
        """Test the policy is created, read back through its listener and deleted."""
        client, stubber = stubbed("elb")
        stubber.add_response(
            "create_lb_cookie_stickiness_policy",
            {},
            {"LoadBalancerName": "web", "PolicyName": "sticky", "CookieExpirationPeriod": 300},
        )
        stubber.add_response(
            "set_load_balancer_policies_of_listener",
            {},
            {"LoadBalancerName": "web", "LoadBalancerPort": 80, "PolicyNames": ["sticky"]},
        )
        stubber.add_response(
            "describe_load_balancer_policies",
            {
                "PolicyDescriptions": [
                    {
                        "PolicyName": "sticky",
                        "PolicyTypeName": "LBCookieStickinessPolicyType",
                        "PolicyAttributeDescriptions": [
                            {"AttributeName": "CookieExpirationPeriod", "AttributeValue": "300"}
                        ],
                    }
                ]
            },
            {"LoadBalancerName": "web", "PolicyNames": ["sticky"]},
        )
        stubber.add_response(
            "describe_load_balancers",
            {
                "LoadBalancerDescriptions": [
                    {
                        "LoadBalancerName": "web",
                        "ListenerDescriptions": [
                            {
                                "Listener": {
                                    "Protocol": "HTTP",
                                    "LoadBalancerPort": 80,
                                    "InstancePort": 8000,
                                },
                                "PolicyNames": ["sticky"],
                            }
                        ],
                    }
                ]
            },
            {"LoadBalancerNames": ["web"]},
        )
        stubber.add_response(
            "set_load_balancer_policies_of_listener",
            {},
            {"LoadBalancerName": "web", "LoadBalancerPort": 80, "PolicyNames": []},
        )
        stubber.add_response(
            "delete_load_balancer_policy", {}, {"LoadBalancerName": "web", "PolicyName": "sticky"}
        )

        with stubber:
            identifier = client.create(
                LB_COOKIE_STICKINESS_POLICY,
                {
                    "LoadBalancerName": "web",
                    "LoadBalancerPort": 80,
                    "PolicyName": "sticky",
                    "CookieExpirationPeriod": 300,
                },
            )
            state = client.describe(LB_COOKIE_STICKINESS_POLICY, identifier)
            client.delete(LB_COOKIE_STICKINESS_POLICY, identifier)

        assert identifier == "web:80:sticky"
        assert state == {
            "LoadBalancerName": "web",
            "LoadBalancerPort": 80,
            "PolicyName": "sticky",
            "CookieExpirationPeriod": 300,
        }
        stubber.assert_no_pending_responses()

    def test_stickiness_policy_session_cookie(self) -> None:
        """Test an expiration of 0 creates a session cookie policy."""
        client, stubber = stubbed("elb")
        stubber.add_response(
            "create_lb_cookie_stickiness_policy",
            {},
            {"LoadBalancerName": "web", "PolicyName": "sticky"},
        )
        stubber.add_response(
            "set_load_balancer_policies_of_listener",
            {},
            {"LoadBalancerName": "web", "LoadBalancerPort": 80, "PolicyNames": ["sticky"]},
        )

        with stubber:
            client.create(
                LB_COOKIE_STICKINESS_POLICY,
                {
                    "LoadBalancerName": "web",
                    "LoadBalancerPort": 80,
                    "PolicyName": "sticky",
                    "CookieExpirationPeriod": 0,
                },
            )

        stubber.assert_no_pending_responses()

    def test_stickiness_policy_detached_is_not_found(self) -> None:
        """Test a policy no longer set on its listener reads as absent."""
        client, stubber = stubbed("elb")
        stubber.add_response(
            "describe_load_balancer_policies",
            {"PolicyDescriptions": [{"PolicyName": "sticky"}]},
            {"LoadBalancerName": "web", "PolicyNames": ["sticky"]},
        )
        stubber.add_response(
            "describe_load_balancers",
            {
                "LoadBalancerDescriptions": [
                    {
                        "LoadBalancerName": "web",
                        "ListenerDescriptions": [
                            {
                                "Listener": {
                                    "Protocol": "HTTP",
                                    "LoadBalancerPort": 80,
                                    "InstancePort": 8000,
                                },
                                "PolicyNames": [],
                            }
                        ],
                    }
                ]
            },
            {"LoadBalancerNames": ["web"]},
        )

        with stubber:
            assert client.describe(LB_COOKIE_STICKINESS_POLICY, "web:80:sticky") == {}

    def test_stickiness_policy_missing(self) -> None:
        """Test PolicyNotFound is translated to NotFound."""
        client, stubber = stubbed("elb")
        stubber.add_client_error(
            "describe_load_balancer_policies",
            service_error_code="PolicyNotFound",
            http_status_code=400,
        )

        with stubber, pytest.raises(RemoteError) as exc_info:
            client.describe(LB_COOKIE_STICKINESS_POLICY, "web:80:sticky")

        assert exc_info.value.kind is ErrorKind.NOT_FOUND

    def test_cloudcontrol_lookup(self) -> None:
        """Test Cloud Control properties are parsed from their JSON document."""
        client, stubber = stubbed("cloudcontrol")
        stubber.add_response(
            "get_resource",
            {
                "TypeName": "AWS::Logs::LogGroup",
                "ResourceDescription": {
                    "Identifier": "/aws/lambda/fn",
                    "Properties": '{"LogGroupName": "/aws/lambda/fn", "RetentionInDays": 7}',
                },
            },
            {"TypeName": "AWS::Logs::LogGroup", "Identifier": "/aws/lambda/fn"},
        )

        with stubber:
            state = client.describe(CLOUDCONTROL_RESOURCE, "AWS::Logs::LogGroup//aws/lambda/fn")

        assert state == {
            "TypeName": "AWS::Logs::LogGroup",
            "Identifier": "/aws/lambda/fn",
            "Properties": {"LogGroupName": "/aws/lambda/fn", "RetentionInDays": 7},
        }

    def test_cloudcontrol_missing(self) -> None:
        """Test an unknown identifier is NotFound."""
        client, stubber = stubbed("cloudcontrol")
        stubber.add_client_error(
            "get_resource", service_error_code="ResourceNotFoundException", http_status_code=404
        )

        with stubber, pytest.raises(RemoteError) as exc_info:
            client.describe(CLOUDCONTROL_RESOURCE, "AWS::Logs::LogGroup/missing")

        assert exc_info.value.kind is ErrorKind.NOT_FOUND

    def test_cloudcontrol_is_read_only(self) -> None:
        """Test the lookup handler refuses to create anything."""
        client, _ = stubbed("cloudcontrol")

        with pytest.raises(RemoteError) as exc_info:
            client.create(CLOUDCONTROL_RESOURCE, {})

        assert exc_info.value.kind is ErrorKind.VALIDATION_FAILED
