from enum import Enum


class TokenStandard(str, Enum):
    ERC721 = "ERC721"    # unique ownership
    ERC1155 = "ERC1155"  # semi-fungible, batchable
    ERC6909 = "ERC6909"  # multi-balance with operators


class TransferType(str, Enum):
    MINT = "MINT"
    BURN = "BURN"
    DIRECT = "DIRECT"
    MARKETPLACE_SALE = "MARKETPLACE_SALE"
    BID_ACCEPTANCE = "BID_ACCEPTANCE"


class ListingStatus(str, Enum):
    ACTIVE = "ACTIVE"
    CANCELLED = "CANCELLED"
    SOLD = "SOLD"


class BidStatus(str, Enum):
    ACTIVE = "ACTIVE"
    OUTBID = "OUTBID"
    CANCELLED = "CANCELLED"
    ACCEPTED = "ACCEPTED"
