from datetime import timedelta

DEFAULT_ENDPOINT = "https://process.datadoghq.com"

# Hard ceiling on items per outbound message, whatever the configuration says
MAX_MESSAGE_BATCH = 100

DEFAULT_PROXY_PORT = 3128

DEFAULT_LOG_FILE = "/var/log/datadog/process-agent.log"
DEFAULT_AGENT_PY = "/opt/datadog-agent/embedded/bin/python"
DEFAULT_AGENT_PY_ENV = "PYTHONPATH=/opt/datadog-agent/agent"
DEFAULT_AGENT_BIN = "/opt/datadog-agent/bin/agent/agent"

PROCESS_CHECKS = ("process", "rtprocess")
CONTAINER_CHECKS = ("container", "rtcontainer")

DEFAULT_CHECK_INTERVAL = timedelta(seconds=10)
DEFAULT_CHECK_INTERVALS = {
    "process": timedelta(seconds=10),
    "rtprocess": timedelta(seconds=2),
    "container": timedelta(seconds=10),
    "rtcontainer": timedelta(seconds=2),
    "connections": timedelta(seconds=10),
}

# Known Kubernetes infrastructure images excluded by default
DEFAULT_KUBE_BLACKLIST = (
    "image:gcr.io/google_containers/pause.*",
    "image:openshift/origin-pod",
)

# Default sensitive words, matched anywhere inside a flag name
DEFAULT_SENSITIVE_WORDS = (
    "*password*",
    "*passwd*",
    "*mysql_pwd*",
    "*access_token*",
    "*auth_token*",
    "*api_key*",
    "*apikey*",
    "*secret*",
    "*credentials*",
    "stripetoken",
)
REDACTED_VALUE = "********"

# Timing constants (in seconds)
HOSTNAME_COMMAND_TIMEOUT = 5
TASK_METADATA_TIMEOUT = 2
TRANSPORT_DIAL_TIMEOUT = 10
TRANSPORT_READ_TIMEOUT = 5

TASK_METADATA_URL = "http://169.254.170.2/v2/metadata"
