"""
ABI fragments of the Base bridge contracts used by the relayer.
"""

from typing import Any, Dict, List

INCOMING_MESSAGE_COMPONENTS: List[Dict[str, Any]] = [
    {"name": "outgoingMessagePubkey", "type": "bytes32", "internalType": "Pubkey"},
    {"name": "nonce", "type": "uint64", "internalType": "uint64"},
    {"name": "sender", "type": "bytes32", "internalType": "Pubkey"},
    {"name": "gasLimit", "type": "uint64", "internalType": "uint64"},
    {"name": "ty", "type": "uint8", "internalType": "enum MessageType"},
    {"name": "data", "type": "bytes", "internalType": "bytes"},
]


def _view(name: str, inputs: List[Dict[str, Any]], output_type: str, output_name: str = "") -> Dict[str, Any]:
    return {
        "type": "function",
        "name": name,
        "inputs": inputs,
        "outputs": [{"name": output_name, "type": output_type, "internalType": output_type}],
        "stateMutability": "view",
    }


_MESSAGE_HASH_INPUT = [{"name": "messageHash", "type": "bytes32", "internalType": "bytes32"}]

BRIDGE_ABI: List[Dict[str, Any]] = [
    _view("BRIDGE_VALIDATOR", [], "address"),
    _view("successes", _MESSAGE_HASH_INPUT, "bool", "success"),
    _view("failures", _MESSAGE_HASH_INPUT, "bool", "failure"),
    _view(
        "generateProof",
        [{"name": "leafIndex", "type": "uint64", "internalType": "uint64"}],
        "bytes32[]",
        "proof",
    ),
    _view(
        "getMessageHash",
        [
            {
                "name": "message",
                "type": "tuple",
                "internalType": "struct IncomingMessage",
                "components": INCOMING_MESSAGE_COMPONENTS,
            }
        ],
        "bytes32",
    ),
    {
        "type": "function",
        "name": "relayMessages",
        "inputs": [
            {
                "name": "messages",
                "type": "tuple[]",
                "internalType": "struct IncomingMessage[]",
                "components": INCOMING_MESSAGE_COMPONENTS,
            }
        ],
        "outputs": [],
        "stateMutability": "nonpayable",
    },
    {
        "type": "event",
        "name": "MessageInitiated",
        "inputs": [
            {"name": "messageHash", "type": "bytes32", "indexed": True, "internalType": "bytes32"},
            {"name": "mmrRoot", "type": "bytes32", "indexed": True, "internalType": "bytes32"},
            {
                "name": "message",
                "type": "tuple",
                "indexed": False,
                "internalType": "struct Message",
                "components": [
                    {"name": "nonce", "type": "uint64", "internalType": "uint64"},
                    {"name": "sender", "type": "address", "internalType": "address"},
                    {"name": "data", "type": "bytes", "internalType": "bytes"},
                ],
            },
        ],
        "anonymous": False,
    },
]

BRIDGE_VALIDATOR_ABI: List[Dict[str, Any]] = [
    _view("validMessages", _MESSAGE_HASH_INPUT, "bool", "isValid"),
]
