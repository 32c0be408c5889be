from .account import Wallet
from .extrinsic import ExtrinsicPayload, ExtrinsicSignature, SignatureScheme


def sign(wallet: Wallet, payload: ExtrinsicPayload) -> ExtrinsicSignature:
    """Sign ``payload`` with the wallet key and wrap it in a signature envelope.

    The envelope repeats the payload's era, nonce and tip so the node can
    rebuild the exact signed bytes.
    """
    signature = wallet.sign(payload.signing_bytes())
    return ExtrinsicSignature(
        public_key=wallet.public_key,
        signature=signature,
        era=payload.era,
        nonce=payload.nonce,
        tip=payload.tip,
        scheme=SignatureScheme.ED25519,
    )


def verify(signature: ExtrinsicSignature, payload: ExtrinsicPayload) -> bool:
    if signature.scheme is not SignatureScheme.ED25519:
        raise ValueError(f"cannot verify {signature.scheme.name} signatures")
    return Wallet.verify(signature.public_key, signature.signature, payload.signing_bytes())
