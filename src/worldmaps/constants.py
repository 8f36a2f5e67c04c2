"""Fixed indicator and map layer configuration."""

import math

# Long-format value column -> country entity column
GDP_PER_CAP = "gdp_per_cap"
LIFE_EXP = "life_exp"

INDICATORS = {
    GDP_PER_CAP: {
        "title": "GDP per capita (current US$)",
        "breaks": [-math.inf, 1000, 2500, 5000, 10000, 25000, 50000, math.inf],
        "labels": [
            "Less than $1,000",
            "$1,000 to $2,500",
            "$2,500 to $5,000",
            "$5,000 to $10,000",
            "$10,000 to $25,000",
            "$25,000 to $50,000",
            "$50,000 or more",
        ],
        "palette": "YlGn",
    },
    LIFE_EXP: {
        "title": "Life expectancy at birth (years)",
        "breaks": [-math.inf, 55, 60, 65, 70, 75, 80, math.inf],
        "labels": [
            "Less than 55",
            "55 to 60",
            "60 to 65",
            "65 to 70",
            "70 to 75",
            "75 to 80",
            "80 or more",
        ],
        "palette": "RdYlBu",
    },
}

# Neutral fills
LAND_COLOR = "#e0e0e0"
MISSING_COLOR = "#bdbdbd"
BORDER_COLOR = "#ffffff"

# Country-code label sizes (points)
LABEL_MIN_SIZE = 3.0
LABEL_MAX_SIZE = 9.0
