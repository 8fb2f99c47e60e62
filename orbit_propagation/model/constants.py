class CONVERTER:
  # Time Conversions
  SEC_PER_DAY  = 86400                     # [seconds] per [day]
  SEC_PER_HOUR = 3600                      # [seconds] per [hour]
  SEC_PER_MIN  = 60                        # [seconds] per [minute]


class SOLARSYSTEMCONSTANTS:
  """
  Central body constants used by the dynamics models.
  """

  class SUN:
    class RADIUS:
      EQUATOR = 696340000.0                 # Sun's equatorial radius [m]

    GP = 1.32712440018e20                   # Sun's gravitational parameter [m³/s²]
    J2 = 0.0                                # Sun's J2 coefficient (negligible)

  class EARTH:
    class RADIUS:
      EQUATOR = 6378137.0                   # Earth's WGS84 equatorial radius [m]
      POLAR   = 6356752.3                   # Earth's WGS84 polar radius [m]

    GP = 3.986004418e14                     # Earth's gravitational parameter [m³/s²]
    J2 = 1.08263e-3                         # Earth's WGS-84 J2 coefficient

  class MOON:
    class RADIUS:
      EQUATOR = 1737400.0                   # Moon's equatorial radius [m]

    GP  = 4.9048695e12                      # Moon's gravitational parameter [m³/s²]
    J2  = 2.032e-4                          # Moon's J2 coefficient
    SMA = 3.844e8                           # Semi-major axis [m]

  # Lookup used by scenario files
  NAME_TO_BODY = {
    'SUN'   : SUN,
    'EARTH' : EARTH,
    'MOON'  : MOON,
  }
