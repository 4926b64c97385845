# opja_core/constants.py
# Fixed label-encryption suite: DHKEM(X25519, HKDF-SHA256), HKDF-SHA256, AES-128-GCM

KEM_ID = 0x0020
KDF_ID = 0x0001
AEAD_ID = 0x0001

MODE_AUTH = 0x02

HPKE_VERSION_LABEL = b"HPKE-v1"

# Sizes in bytes
PUBLIC_KEY_SIZE = 32
PRIVATE_KEY_SIZE = 32
ENC_SIZE = 32
DH_SECRET_SIZE = 32
HASH_SIZE = 32
AEAD_KEY_SIZE = 16
NONCE_SIZE = 12
TAG_SIZE = 16

LABEL_ONE = 0xFF
LABEL_ZERO = 0x00

# Sequence counter is as wide as the nonce; this value is never used to seal
MAX_SEQUENCE = (1 << (8 * NONCE_SIZE)) - 1

# Identity key ring
MAX_KEYS = 5
TRUST_WINDOW_DAYS = 180

# Directory record
RECORD_VERSION = "OPJA1"
RECORD_KEY_TYPE = "x25519"
RECORD_SUBDOMAIN = "_opja"
PUBLIC_KEY_B64URL_LEN = 43

TRANSACTION_ID_MAX_LEN = 16
