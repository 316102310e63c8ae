"""GraphQL documents issued against the BirdWeather API."""

_SPECIES_FIELDS = """
          id
          commonName
          scientificName
          thumbnailUrl
          color
"""

_DETECTION_FIELDS = f"""
        id
        timestamp
        confidence
        probability
        score
        species {{{_SPECIES_FIELDS}        }}
        station {{
          id
          name
          location
        }}
"""

TODAY_DETECTIONS = f"""
  query todayDetections($stationIds: [ID!], $period: InputDuration) {{
    detections(
      stationIds: $stationIds
      period: $period
      first: 500
      sortBy: "timestamp"
    ) {{
      nodes {{{_DETECTION_FIELDS}      }}
      totalCount
      speciesCount
    }}
  }}
"""

HISTORICAL_DETECTIONS = f"""
  query historicalDetections($stationIds: [ID!], $period: InputDuration, $first: Int, $after: String) {{
    detections(
      stationIds: $stationIds
      period: $period
      first: $first
      after: $after
      sortBy: "timestamp"
    ) {{
      nodes {{{_DETECTION_FIELDS}      }}
      pageInfo {{
        hasNextPage
        endCursor
      }}
    }}
  }}
"""

TOP_SPECIES = f"""
  query topSpecies($stationIds: [ID!], $period: InputDuration, $limit: Int) {{
    topSpecies(stationIds: $stationIds, period: $period, limit: $limit) {{
      count
      averageProbability
      species {{{_SPECIES_FIELDS}      }}
      speciesId
    }}
  }}
"""

TIME_OF_DAY_COUNTS = f"""
  query timeOfDayDetectionCounts($stationIds: [ID!], $period: InputDuration) {{
    timeOfDayDetectionCounts(stationIds: $stationIds, period: $period) {{
      species {{{_SPECIES_FIELDS}      }}
      speciesId
      count
      bins {{
        count
        key
      }}
    }}
  }}
"""

DAILY_DETECTION_COUNTS = f"""
  query dailyDetectionCounts($stationIds: [ID!], $period: InputDuration) {{
    dailyDetectionCounts(stationIds: $stationIds, period: $period) {{
      date
      total
      counts {{
        count
        species {{{_SPECIES_FIELDS}        }}
        speciesId
      }}
    }}
  }}
"""

_STATION_FIELDS = """
      id
      name
      location
      country
      state
      coords {
        lat
        lon
      }
      type
      latestDetectionAt
"""

STATION_INFO = f"""
  query stationInfo($id: ID!) {{
    station(id: $id) {{{_STATION_FIELDS}      earliestDetectionAt
      timezone
      weather {{
        temp
        description
        humidity
        windSpeed
        windDir
        sunrise
        sunset
        timestamp
      }}
      counts {{
        detections
        species
      }}
    }}
  }}
"""

SEARCH_STATIONS = f"""
  query searchStations($query: String, $first: Int) {{
    stations(query: $query, first: $first) {{
      nodes {{{_STATION_FIELDS}        counts {{
          detections
          species
        }}
      }}
      totalCount
    }}
  }}
"""

COUNTS = """
  query counts($stationIds: [ID!], $period: InputDuration) {
    counts(stationIds: $stationIds, period: $period) {
      detections
      species
      stations
      birdnet
    }
  }
"""
