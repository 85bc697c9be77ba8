import jax

jax.config.update("jax_enable_x64", True)

from .types import Array

from . import adapters

from . import basis
from .basis.shell import GaussianShell

from . import ecp
from .ecp.integral import ECPIntegral, ShellPairResult
from .ecp.matrix import EcpCenter, ecp_matrix
from .ecp.options import Options
from .ecp.potential import ECP, GaussianECP

from . import math
from .math.quadrature import GCQuadrature, GridType
