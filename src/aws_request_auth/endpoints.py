"""
Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
SPDX-License-Identifier: Apache-2.0
"""

DEFAULT_REGION = "us-east-1"
DEFAULT_SERVICE = "s3"
REGION_ALIASES: dict[str, str] = {"external-1": DEFAULT_REGION}


def service_and_region(host: str) -> tuple[str, str]:
    """Guess the signing service and region from an AWS hostname.

    See https://docs.aws.amazon.com/general/latest/gr/rande.html. Hosts that
    don't match a known layout sign as S3 in us-east-1.
    """
    region = DEFAULT_REGION
    service = DEFAULT_SERVICE

    parts = host.rsplit(":", 1)[0].split(".")
    if len(parts) == 4:
        # service.region.amazonaws.com or bucket.s3[-region].amazonaws.com
        if parts[1] == "s3":
            service = "s3"
        elif parts[1].startswith("s3-"):
            region = parts[1][3:]
        else:
            service, region = parts[0], parts[1]
    elif len(parts) == 5:
        service, region = parts[2], parts[1]
    elif parts[0].startswith("s3-"):
        # s3-region.amazonaws.com
        region = parts[0][3:]
    else:
        service = parts[0]

    return service, REGION_ALIASES.get(region, region)
