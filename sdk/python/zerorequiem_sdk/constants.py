"""
Protocol constants, contract ABIs and network presets
"""

# secp256k1 group order
EC_GROUP_ORDER = 0xFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFEBAAEDCE6AF48A03BBFD25E8CD0364141

SIGNING_MESSAGE = (
    "Sign this message to access your ZeroRequiem stealth account.\n\n"
    "Only sign this message for a trusted client!"
)

DEFAULT_CHAIN_ID = 1

# UserOperation gas defaults
DEFAULT_CALL_GAS_LIMIT = 200_000
DEFAULT_VERIFICATION_GAS_LIMIT = 500_000
ACCOUNT_DEPLOYMENT_GAS = 200_000
DEFAULT_PRE_VERIFICATION_GAS = 60_000
DEFAULT_MAX_FEE_PER_GAS = 5_000_000_000
DEFAULT_MAX_PRIORITY_FEE_PER_GAS = 1_500_000_000

HANDLE_OPS_GAS_LIMIT = 2_000_000

# Sponsorship window, seconds relative to now
VALID_AFTER_SKEW = 60
VALIDITY_PERIOD = 600

ENTRY_POINT_V06 = "0x5FF137D4b0FDCD49DcA30c7CF57E578a026d2789"

BSC_TESTNET = {
    "chain_id": 97,
    "name": "BNB Smart Chain Testnet",
    "rpc_url": "https://bsc-testnet-dataseed.bnbchain.org",
    "explorer_url": "https://testnet.bscscan.com",
}

DEPLOYED = {
    "vault": "0xc02cE66D57b7dC05446c041864aCdCc23B94Ad48",
    "registry": "0x867E1c09B0aa3C79A171de8d20CA0C14Dd21fcAb",
    "factory": "0xaB885C2db018E3690269a91c9bDbdf53a5DC0614",
    "paymaster": "0xe0fdDfa9f06c9E35eCDec67f2c7AFCB3Af0E439C",
    "relayer": "https://zerorequiem-relayer.vercel.app",
}


def _fn(name, inputs, outputs=(), mutability="nonpayable"):
    return {
        "type": "function",
        "name": name,
        "inputs": [{"name": n, "type": t} for n, t in inputs],
        "outputs": [{"name": "", "type": t} for t in outputs],
        "stateMutability": mutability,
    }


_USER_OP_COMPONENTS = [
    {"name": "sender", "type": "address"},
    {"name": "nonce", "type": "uint256"},
    {"name": "initCode", "type": "bytes"},
    {"name": "callData", "type": "bytes"},
    {"name": "callGasLimit", "type": "uint256"},
    {"name": "verificationGasLimit", "type": "uint256"},
    {"name": "preVerificationGas", "type": "uint256"},
    {"name": "maxFeePerGas", "type": "uint256"},
    {"name": "maxPriorityFeePerGas", "type": "uint256"},
    {"name": "paymasterAndData", "type": "bytes"},
    {"name": "signature", "type": "bytes"},
]

_USER_OP_TUPLE = {"name": "userOp", "type": "tuple", "components": _USER_OP_COMPONENTS}

VAULT_ABI = [
    _fn("sendToStealth", [("receiver", "address"), ("pkx", "bytes32"),
                          ("ciphertext", "bytes32")], mutability="payable"),
    _fn("withdraw", [("recipient", "address"), ("amount", "uint256")]),
    _fn("stealthBalances", [("account", "address")], ["uint256"], "view"),
    {
        "type": "event",
        "name": "Announcement",
        "anonymous": False,
        "inputs": [
            {"name": "receiver", "type": "address", "indexed": True},
            {"name": "amount", "type": "uint256", "indexed": False},
            {"name": "token", "type": "address", "indexed": True},
            {"name": "pkx", "type": "bytes32", "indexed": False},
            {"name": "ciphertext", "type": "bytes32", "indexed": False},
        ],
    },
]

REGISTRY_ABI = [
    _fn("setStealthKeys", [("spendingPubKeyPrefix", "uint256"), ("spendingPubKey", "uint256"),
                           ("viewingPubKeyPrefix", "uint256"), ("viewingPubKey", "uint256")]),
    _fn("stealthKeys", [("registrant", "address")],
        ["uint256", "uint256", "uint256", "uint256"], "view"),
]

FACTORY_ABI = [
    _fn("getAddress", [("owner", "address"), ("salt", "uint256")], ["address"], "view"),
    _fn("createAccount", [("owner", "address"), ("salt", "uint256")], ["address"]),
]

SIMPLE_ACCOUNT_ABI = [
    _fn("execute", [("dest", "address"), ("value", "uint256"), ("func", "bytes")]),
]

ENTRY_POINT_ABI = [
    {
        "type": "function",
        "name": "handleOps",
        "inputs": [
            {"name": "ops", "type": "tuple[]", "components": _USER_OP_COMPONENTS},
            {"name": "beneficiary", "type": "address"},
        ],
        "outputs": [],
        "stateMutability": "nonpayable",
    },
    {
        "type": "function",
        "name": "getUserOpHash",
        "inputs": [_USER_OP_TUPLE],
        "outputs": [{"name": "", "type": "bytes32"}],
        "stateMutability": "view",
    },
    _fn("getNonce", [("sender", "address"), ("key", "uint192")], ["uint256"], "view"),
    _fn("balanceOf", [("account", "address")], ["uint256"], "view"),
]

PAYMASTER_ABI = [
    {
        "type": "function",
        "name": "getHash",
        "inputs": [
            _USER_OP_TUPLE,
            {"name": "validUntil", "type": "uint48"},
            {"name": "validAfter", "type": "uint48"},
        ],
        "outputs": [{"name": "", "type": "bytes32"}],
        "stateMutability": "view",
    },
    _fn("senderNonce", [("sender", "address")], ["uint256"], "view"),
]
