"""
Region sets per cloud provider and partition
"""

from typing import Dict, List

REGIONS: Dict[str, Dict[str, List[str]]] = {
    "aws": {
        "commercial": [
            "us-east-1", "us-east-2", "us-west-1", "us-west-2",
            "ca-central-1", "sa-east-1",
            "eu-west-1", "eu-west-2", "eu-west-3", "eu-central-1", "eu-north-1",
            "ap-south-1", "ap-southeast-1", "ap-southeast-2",
            "ap-northeast-1", "ap-northeast-2", "ap-northeast-3",
        ],
        "govcloud": ["us-gov-west-1", "us-gov-east-1"],
    },
    "azure": {
        "commercial": [
            "eastus", "eastus2", "westus", "westus2", "centralus",
            "northcentralus", "southcentralus", "westcentralus",
            "canadacentral", "canadaeast", "brazilsouth",
            "northeurope", "westeurope", "uksouth", "ukwest",
            "francecentral", "germanywestcentral",
            "eastasia", "southeastasia", "japaneast", "japanwest",
            "australiaeast", "australiasoutheast", "centralindia",
            "koreacentral", "global",
        ],
        "govcloud": [
            "usgovvirginia", "usgovtexas", "usgovarizona", "usgoviowa",
            "global",
        ],
    },
    "oracle": {
        "commercial": [
            "us-ashburn-1", "us-phoenix-1", "us-sanjose-1",
            "ca-toronto-1", "ca-montreal-1", "sa-saopaulo-1",
            "uk-london-1", "eu-frankfurt-1", "eu-amsterdam-1", "eu-zurich-1",
            "ap-tokyo-1", "ap-osaka-1", "ap-seoul-1", "ap-mumbai-1",
            "ap-sydney-1", "ap-melbourne-1",
        ],
        "govcloud": [
            "us-langley-1", "us-luke-1",
            "us-gov-ashburn-1", "us-gov-chicago-1", "us-gov-phoenix-1",
        ],
    },
}

PROVIDERS = tuple(REGIONS)


def region_set(provider: str, govcloud: bool = False) -> List[str]:
    """Regions of the commercial or government partition of a provider"""
    try:
        partitions = REGIONS[provider]
    except KeyError:
        raise ValueError(f"Unknown provider: {provider}") from None
    return list(partitions["govcloud" if govcloud else "commercial"])
