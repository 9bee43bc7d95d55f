"""Constants for the S3 probe."""

# Controller name used in structured log lines
CONTROLLER = "s3-probe"

# Consul service metadata keys
META_PROXY_ADDRESS = "proxy_address"
META_EXTERNAL_CLUSTER_FQDN = "external_cluster_fqdn"
META_GATEWAY_DESTINATIONS = "gateway_destinations"

# Label value used when discovery fails before any service is known
DISCOVERY_NO_TARGET = "N/A"

# Scheduling
MILLISECONDS_IN_MINUTE = 60_000
MAX_RATE_PER_MINUTE = MILLISECONDS_IN_MINUTE

# Bucket preparation
BUCKET_EXPIRY_DAYS = 1
LIFECYCLE_RULE_ID = "expire-bucket"
DURABILITY_ITEM_PREFIX = "fake-item-"
SEED_PROGRESS_EVERY = 100
DEFAULT_SEED_RETRY_DELAY = 5.0

# Checks
OBJECT_NAME_HEX_LENGTH = 20
GATEWAY_ITEM_SIZE = 1024
READ_CHUNK_SIZE = 1024

# Operation label values
OP_LIST_BUCKETS = "list_buckets"
OP_PUT_OBJECT = "put_object"
OP_GET_OBJECT = "get_object"
OP_REMOVE_OBJECT = "remove_object"
OP_GATEWAY_PUT_OBJECT = "gateway_put_object"
OP_GATEWAY_GET_OBJECT = "gateway_get_object"
OP_GATEWAY_REMOVE_OBJECT = "gateway_remove_object"

# Log events
EVENT_PROBE_CREATED = "ProbeCreated"
EVENT_PROBE_PREPARED = "ProbePrepared"
EVENT_PREPARATION_FAILED = "PreparationFailed"
EVENT_PROBE_STARTED = "ProbeStarted"
EVENT_PROBE_TERMINATED = "ProbeTerminated"
EVENT_DISCOVERY_FAILED = "DiscoveryFailed"
EVENT_DISCOVERY_COMPLETED = "DiscoveryCompleted"
