"""Protocol constants for the exchange core."""

# Shares permanently locked on the first mint of every pair
MINIMUM_LIQUIDITY = 1000

# 0.3% swap fee on the input side: amount_in * 997 / 1000
FEE_NUMERATOR = 997
FEE_DENOMINATOR = 1000
# Fee as charged in the invariant check: balance * 1000 - amount_in * 3
FEE_CHARGED = FEE_DENOMINATOR - FEE_NUMERATOR

# Protocol fee takes 1/(PROTOCOL_FEE_DIVISOR + 1) of fee growth
PROTOCOL_FEE_DIVISOR = 5

# Null identity: never a valid token or recipient, holds the locked shares
ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"

# Pseudo-token for the chain's native asset
NATIVE_TOKEN = "0xeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeee"

# Default factory identity and pair init code hash used for address derivation
DEFAULT_FACTORY_ADDRESS = "0x2279b7a0a67db372996a5fab50d91eaa73d2ebe6"
DEFAULT_INIT_CODE_HASH = "0x96e8ac4277198ff8b6f785478aa9a39f403cb768dd02cbee326c3e7da348845f"
DEFAULT_WRAPPED_NATIVE = "0x8a791620dd6260079bf849dc5567adc3f2fdc318"
# Custody account the router uses while unwrapping native outputs
DEFAULT_ROUTER_ADDRESS = "0x610178da211fef7d417bc0e6fed39f05609ad788"
