"""Remote certificate service URL templates and protocol constants."""

from __future__ import annotations

DEFAULT_API_HOST = "api.venafi.cloud/"
API_VERSION = "v1/"
BASE_PATH = "outagedetection/" + API_VERSION

USER_ACCOUNTS = API_VERSION + "useraccounts"
CERTIFICATE_REQUESTS = BASE_PATH + "certificaterequests"
CERTIFICATE_REQUEST_BY_ID = CERTIFICATE_REQUESTS + "/{request_id}"
CERTIFICATES = BASE_PATH + "certificates"
CERTIFICATE_BY_ID = CERTIFICATES + "/{certificate_id}"
CERTIFICATE_CONTENTS = CERTIFICATES + "/{certificate_id}/contents"
CERTIFICATE_SEARCH = BASE_PATH + "certificatesearch"
APPLICATION_BY_NAME = BASE_PATH + "applications/name/{app_name}"
ISSUING_TEMPLATE = BASE_PATH + "applications/{app_name}/certificateissuingtemplates/{alias}"

API_KEY_HEADER = "tppl-api-key"

# Workload name used in usage metadata when the caller leaves it unset
DEFAULT_APP_NAME = "Default"

# apiClientInformation.type unless overridden by an ORIGIN custom field
SDK_NAME = "cert-lifecycle-manager"

SEARCH_PAGE_SIZE = 50
