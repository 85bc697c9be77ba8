from .angular import AngularIntegral
from .radial import RadialIntegral, RadialResult
from .integral import ECPIntegral, ShellPairResult, angular_tables
from .matrix import EcpCenter, ecp_matrix
from .options import Options
from .potential import ECP, GaussianECP, Potential
