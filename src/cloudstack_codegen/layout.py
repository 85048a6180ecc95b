from __future__ import annotations

from pathlib import Path
from typing import Any, Mapping

from ruamel.yaml import YAML
from ruamel.yaml.error import YAMLError

from .errors import LayoutError

# Service name -> operations the generated service exposes, in emission order.
LAYOUT: dict[str, list[str]] = {
    "AccountService": [
        "createAccount",
        "deleteAccount",
        "disableAccount",
        "enableAccount",
        "listAccounts",
        "listProjectAccounts",
        "lockAccount",
        "markDefaultZoneForAccount",
        "updateAccount",
    ],
    "AddressService": [
        "associateIpAddress",
        "disassociateIpAddress",
        "listPublicIpAddresses",
        "updateIpAddress",
    ],
    "AffinityGroupService": [
        "createAffinityGroup",
        "deleteAffinityGroup",
        "listAffinityGroupTypes",
        "listAffinityGroups",
        "updateVMAffinityGroup",
    ],
    "AlertService": [
        "archiveAlerts",
        "deleteAlerts",
        "generateAlert",
        "listAlerts",
    ],
    "AsyncjobService": [
        "listAsyncJobs",
        "queryAsyncJobResult",
    ],
    "AuthenticationService": [
        "login",
        "logout",
    ],
    "CertificateService": [
        "uploadCustomCertificate",
    ],
    "ClusterService": [
        "addCluster",
        "deleteCluster",
        "listClusters",
        "updateCluster",
    ],
    "ConfigurationService": [
        "listCapabilities",
        "listConfigurations",
        "listDeploymentPlanners",
        "updateConfiguration",
    ],
    "DiskOfferingService": [
        "createDiskOffering",
        "deleteDiskOffering",
        "listDiskOfferings",
        "updateDiskOffering",
    ],
    "DomainService": [
        "createDomain",
        "deleteDomain",
        "listDomainChildren",
        "listDomains",
        "updateDomain",
    ],
    "EventService": [
        "archiveEvents",
        "deleteEvents",
        "listEventTypes",
        "listEvents",
    ],
    "FirewallService": [
        "addPaloAltoFirewall",
        "createEgressFirewallRule",
        "createFirewallRule",
        "createPortForwardingRule",
        "deleteEgressFirewallRule",
        "deleteFirewallRule",
        "deletePortForwardingRule",
        "listEgressFirewallRules",
        "listFirewallRules",
        "listPortForwardingRules",
        "updateEgressFirewallRule",
        "updateFirewallRule",
        "updatePortForwardingRule",
    ],
    "GuestOSService": [
        "addGuestOs",
        "addGuestOsMapping",
        "listGuestOsMapping",
        "listOsCategories",
        "listOsTypes",
        "removeGuestOs",
        "removeGuestOsMapping",
        "updateGuestOs",
        "updateGuestOsMapping",
    ],
    "HostService": [
        "addHost",
        "cancelHostMaintenance",
        "deleteHost",
        "listHosts",
        "prepareHostForMaintenance",
        "reconnectHost",
        "updateHost",
    ],
    "HypervisorService": [
        "listHypervisorCapabilities",
        "listHypervisors",
        "updateHypervisorCapabilities",
    ],
    "ISOService": [
        "attachIso",
        "copyIso",
        "deleteIso",
        "detachIso",
        "extractIso",
        "listIsoPermissions",
        "listIsos",
        "registerIso",
        "updateIso",
        "updateIsoPermissions",
    ],
    "ImageStoreService": [
        "addImageStore",
        "createSecondaryStagingStore",
        "deleteImageStore",
        "deleteSecondaryStagingStore",
        "listImageStores",
        "listSecondaryStagingStores",
        "updateCloudToUseObjectStore",
    ],
    "LimitService": [
        "listResourceLimits",
        "updateResourceCount",
        "updateResourceLimit",
    ],
    "LoadBalancerService": [
        "assignToLoadBalancerRule",
        "createLBStickinessPolicy",
        "createLoadBalancerRule",
        "deleteLBStickinessPolicy",
        "deleteLoadBalancerRule",
        "listLBStickinessPolicies",
        "listLoadBalancerRuleInstances",
        "listLoadBalancerRules",
        "removeFromLoadBalancerRule",
        "updateLoadBalancerRule",
    ],
    "NATService": [
        "createIpForwardingRule",
        "deleteIpForwardingRule",
        "disableStaticNat",
        "enableStaticNat",
        "listIpForwardingRules",
    ],
    "NetworkACLService": [
        "createNetworkACL",
        "createNetworkACLList",
        "deleteNetworkACL",
        "deleteNetworkACLList",
        "listNetworkACLLists",
        "listNetworkACLs",
        "replaceNetworkACLList",
        "updateNetworkACLItem",
    ],
    "NetworkOfferingService": [
        "createNetworkOffering",
        "deleteNetworkOffering",
        "listNetworkOfferings",
        "updateNetworkOffering",
    ],
    "NetworkService": [
        "addNetworkServiceProvider",
        "createNetwork",
        "createPhysicalNetwork",
        "deleteNetwork",
        "deleteNetworkServiceProvider",
        "deletePhysicalNetwork",
        "listNetworkServiceProviders",
        "listNetworks",
        "listPhysicalNetworks",
        "restartNetwork",
        "updateNetwork",
        "updateNetworkServiceProvider",
        "updatePhysicalNetwork",
    ],
    "NicService": [
        "addIpToNic",
        "listNics",
        "removeIpFromNic",
        "updateVmNicIp",
    ],
    "OutofbandManagementService": [
        "changeOutOfBandManagementPassword",
        "configureOutOfBandManagement",
        "disableOutOfBandManagementForHost",
        "enableOutOfBandManagementForHost",
        "issueOutOfBandManagementPowerAction",
    ],
    "PodService": [
        "createPod",
        "deletePod",
        "listPods",
        "updatePod",
    ],
    "ProjectService": [
        "activateProject",
        "createProject",
        "deleteProject",
        "listProjectInvitations",
        "listProjects",
        "suspendProject",
        "updateProject",
    ],
    "ResourcetagsService": [
        "createTags",
        "deleteTags",
        "listTags",
    ],
    "RoleService": [
        "createRole",
        "createRolePermission",
        "deleteRole",
        "deleteRolePermission",
        "listRolePermissions",
        "listRoles",
        "updateRole",
        "updateRolePermission",
    ],
    "SSHService": [
        "createSSHKeyPair",
        "deleteSSHKeyPair",
        "listSSHKeyPairs",
        "registerSSHKeyPair",
        "resetSSHKeyForVirtualMachine",
    ],
    "SecurityGroupService": [
        "authorizeSecurityGroupEgress",
        "authorizeSecurityGroupIngress",
        "createSecurityGroup",
        "deleteSecurityGroup",
        "listSecurityGroups",
        "revokeSecurityGroupEgress",
        "revokeSecurityGroupIngress",
        "updateSecurityGroup",
    ],
    "ServiceOfferingService": [
        "createServiceOffering",
        "deleteServiceOffering",
        "listServiceOfferings",
        "updateServiceOffering",
    ],
    "SnapshotService": [
        "createSnapshot",
        "createSnapshotPolicy",
        "deleteSnapshot",
        "deleteSnapshotPolicies",
        "listSnapshotPolicies",
        "listSnapshots",
        "revertSnapshot",
    ],
    "StoragePoolService": [
        "cancelStorageMaintenance",
        "createStoragePool",
        "deleteStoragePool",
        "enableStorageMaintenance",
        "listStoragePools",
        "updateStoragePool",
    ],
    "TemplateService": [
        "copyTemplate",
        "createTemplate",
        "deleteTemplate",
        "extractTemplate",
        "listTemplatePermissions",
        "listTemplates",
        "prepareTemplate",
        "registerTemplate",
        "updateTemplate",
        "updateTemplatePermissions",
    ],
    "UsageService": [
        "addTrafficType",
        "deleteTrafficType",
        "listTrafficTypes",
        "listUsageRecords",
        "listUsageTypes",
        "updateTrafficType",
    ],
    "UserService": [
        "createUser",
        "deleteUser",
        "disableUser",
        "enableUser",
        "getUser",
        "getVirtualMachineUserData",
        "listUsers",
        "lockUser",
        "registerUserKeys",
        "updateUser",
    ],
    "VLANService": [
        "createVlanIpRange",
        "deleteVlanIpRange",
        "listVlanIpRanges",
    ],
    "VPCService": [
        "createPrivateGateway",
        "createStaticRoute",
        "createVPC",
        "createVPCOffering",
        "deletePrivateGateway",
        "deleteStaticRoute",
        "deleteVPC",
        "deleteVPCOffering",
        "listPrivateGateways",
        "listStaticRoutes",
        "listVPCOfferings",
        "listVPCs",
        "restartVPC",
        "updateVPC",
        "updateVPCOffering",
    ],
    "VPNService": [
        "addVpnUser",
        "createRemoteAccessVpn",
        "createVpnConnection",
        "createVpnCustomerGateway",
        "createVpnGateway",
        "deleteRemoteAccessVpn",
        "deleteVpnConnection",
        "deleteVpnCustomerGateway",
        "deleteVpnGateway",
        "listRemoteAccessVpns",
        "listVpnConnections",
        "listVpnCustomerGateways",
        "listVpnGateways",
        "listVpnUsers",
        "removeVpnUser",
        "resetVpnConnection",
        "updateVpnCustomerGateway",
    ],
    "VirtualMachineService": [
        "addNicToVirtualMachine",
        "changeServiceForVirtualMachine",
        "deployVirtualMachine",
        "destroyVirtualMachine",
        "expungeVirtualMachine",
        "getVMPassword",
        "listVirtualMachines",
        "migrateVirtualMachine",
        "rebootVirtualMachine",
        "recoverVirtualMachine",
        "removeNicFromVirtualMachine",
        "resetPasswordForVirtualMachine",
        "restoreVirtualMachine",
        "scaleVirtualMachine",
        "startVirtualMachine",
        "stopVirtualMachine",
        "updateDefaultNicForVirtualMachine",
        "updateVirtualMachine",
    ],
    "VolumeService": [
        "attachVolume",
        "createVolume",
        "deleteVolume",
        "detachVolume",
        "extractVolume",
        "listVolumes",
        "migrateVolume",
        "resizeVolume",
        "updateVolume",
        "uploadVolume",
    ],
    "ZoneService": [
        "createZone",
        "deleteZone",
        "disableOutOfBandManagementForZone",
        "enableOutOfBandManagementForZone",
        "listZones",
        "updateZone",
    ],
}


def _validate_layout(data: Any, *, source: str) -> dict[str, list[str]]:
    if not isinstance(data, Mapping):
        raise LayoutError(f"Layout in {source} must map service names to operation lists")
    layout: dict[str, list[str]] = {}
    for service, apis in data.items():
        if not isinstance(service, str) or not service:
            raise LayoutError(f"Invalid service name in {source}: {service!r}")
        if not isinstance(apis, list) or not all(isinstance(api, str) for api in apis):
            raise LayoutError(f"Service {service} in {source} must list operation names")
        layout[service] = [str(api) for api in apis]
    return layout


def load_layout(path: Path) -> dict[str, list[str]]:
    yaml = YAML(typ="safe")
    try:
        with path.open("r", encoding="utf-8") as file:
            data = yaml.load(file)
    except YAMLError as exc:
        raise LayoutError(f"Invalid YAML in {path}: {exc}") from exc
    return _validate_layout(data, source=str(path))
