"""Named platform exceptions, keyed by operation (or service) name.

Every backward-compatibility quirk the generator knows about lives here so the
emitters only ever ask "does this operation carry flag X".
"""

from __future__ import annotations

from enum import Flag, auto


class Policy(Flag):
    NONE = 0
    # Sent as a form-encoded POST unless the client is GET-only.
    POST = auto()
    # Idempotent, so transport failures are retried.
    RETRY_IDEMPOTENT = auto()
    # The platform reports a wrong count; recount from the returned list.
    COUNT_CORRECTION = auto()
    # A rule collection holding exactly one element collapses to that element.
    COLLAPSE_SINGLE_RULE = auto()
    # endport/startport arrive as strings and are coerced to integers.
    PORT_COERCION = auto()
    # The payload is wrapped in a second single-key envelope.
    NESTED_ENVELOPE = auto()
    # Every map parameter is encoded as key/value pairs.
    DETAILS_KEY_VALUE = auto()
    # Lookup helpers take an extra isofilter argument.
    ISO_FILTER = auto()
    # Lookup helpers take an extra zoneid argument.
    ZONE_FILTER = auto()
    # A non-list operation whose response still gets a count/list wrapper.
    LIST_WRAPPER = auto()
    # The list wrapper carries VirtualMachine instances next to the vm/ip pairs.
    LB_RULE_INSTANCES = auto()


OPERATION_POLICIES: dict[str, Policy] = {
    "deployVirtualMachine": Policy.POST,
    "login": Policy.POST,
    "updateVirtualMachine": Policy.POST,
    "queryAsyncJobResult": Policy.RETRY_IDEMPOTENT,
    "listAffinityGroups": Policy.COUNT_CORRECTION,
    "authorizeSecurityGroupIngress": Policy.COLLAPSE_SINGLE_RULE,
    "authorizeSecurityGroupEgress": Policy.COLLAPSE_SINGLE_RULE,
    "createAccount": Policy.NESTED_ENVELOPE,
    "createNetwork": Policy.NESTED_ENVELOPE,
    "createNetworkOffering": Policy.NESTED_ENVELOPE,
    "createSSHKeyPair": Policy.NESTED_ENVELOPE,
    "createSecurityGroup": Policy.NESTED_ENVELOPE,
    "createServiceOffering": Policy.NESTED_ENVELOPE,
    "createUser": Policy.NESTED_ENVELOPE,
    "getVirtualMachineUserData": Policy.NESTED_ENVELOPE,
    "registerSSHKeyPair": Policy.NESTED_ENVELOPE,
    "registerUserKeys": Policy.NESTED_ENVELOPE,
    "addGuestOs": Policy.DETAILS_KEY_VALUE,
    "addImageStore": Policy.DETAILS_KEY_VALUE,
    "addResourceDetail": Policy.DETAILS_KEY_VALUE,
    "createSecondaryStagingStore": Policy.DETAILS_KEY_VALUE,
    "updateCloudToUseObjectStore": Policy.DETAILS_KEY_VALUE,
    "updateGuestOs": Policy.DETAILS_KEY_VALUE,
    "updateZone": Policy.DETAILS_KEY_VALUE,
    "listIsos": Policy.ISO_FILTER | Policy.ZONE_FILTER,
    "listTemplates": Policy.ZONE_FILTER,
    "registerTemplate": Policy.LIST_WRAPPER,
    "listLoadBalancerRuleInstances": Policy.LB_RULE_INSTANCES,
}

SERVICE_POLICIES: dict[str, Policy] = {
    "FirewallService": Policy.PORT_COERCION,
}

# Wire keys of list wrappers that do not follow the lower-cased singular rule.
LIST_WIRE_KEYS: dict[str, str] = {
    "listAsyncJobs": "asyncjobs",
    "listEgressFirewallRules": "firewallrule",
    "registerTemplate": "template",
}

COLLAPSE_KEYS: dict[str, str] = {
    "authorizeSecurityGroupIngress": "ingressrule",
    "authorizeSecurityGroupEgress": "egressrule",
}

LB_RULE_VM_IP_KEY = "lbrulevmidip"


def policy_for(operation: str, service: str = "") -> Policy:
    return OPERATION_POLICIES.get(operation, Policy.NONE) | SERVICE_POLICIES.get(service, Policy.NONE)


def operations_with(flag: Policy) -> list[str]:
    return sorted(name for name, policy in OPERATION_POLICIES.items() if flag in policy)
