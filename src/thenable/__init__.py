from .modules.bridge import *
from .modules.chainable import *
from .modules.errors import *
from .modules.future import *
from .modules.future_state import *
from .modules.scheduler import *
