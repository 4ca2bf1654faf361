from .tenancy import Store, User
from .pos import PosDevice, PosSession, PosEvent, Receipt, PosLineCorrection
from .payments import ConnectedCharge

__all__ = [
    'Store', 'User',
    'PosDevice', 'PosSession', 'PosEvent', 'Receipt', 'PosLineCorrection',
    'ConnectedCharge',
]
