"""ISCP command table for the commands common to Onkyo/Integra receivers.

``COMMANDS`` maps zone -> ISCP mnemonic -> description. Names with a comma
list aliases, the first one being the canonical name. The lookup tables
used to translate human commands are derived from it.
"""
from aioonkyo.utils import ValueRange

QUERY = {"QSTN": {"name": "query", "description": "gets the current status"}}

COMMANDS = {
    "main": {
        "PWR": {
            "name": "system-power,power",
            "description": "System Power Command",
            "values": {
                "00": {"name": "standby,off", "description": "sets System Standby"},
                "01": {"name": "on", "description": "sets System On"},
                **QUERY,
            },
        },
        "AMT": {
            "name": "audio-muting,mute",
            "description": "Audio Muting Command",
            "values": {
                "00": {"name": "off", "description": "sets Audio Muting Off"},
                "01": {"name": "on", "description": "sets Audio Muting On"},
                "TG": {"name": "toggle", "description": "sets Audio Muting Wrap-Around"},
                **QUERY,
            },
        },
        "MVL": {
            "name": "master-volume,volume",
            "description": "Master Volume Command",
            "values": {
                ValueRange(0, 100): {"name": None, "description": "Volume Level 0 - 100"},
                "UP": {"name": "level-up,up", "description": "sets Volume Level Up"},
                "DOWN": {"name": "level-down,down", "description": "sets Volume Level Down"},
                "UP1": {"name": "level-up-1db-step,up1", "description": "sets Volume Level Up 1dB Step"},
                "DOWN1": {"name": "level-down-1db-step,down1", "description": "sets Volume Level Down 1dB Step"},
                **QUERY,
            },
        },
        "SLI": {
            "name": "input-selector,source",
            "description": "Input Selector Command",
            "values": {
                "00": {"name": "video1,vcr/dvr", "description": "sets VIDEO1, VCR/DVR"},
                "01": {"name": "video2,cbl/sat", "description": "sets VIDEO2, CBL/SAT"},
                "02": {"name": "video3,game", "description": "sets VIDEO3, GAME/TV, GAME"},
                "05": {"name": "video6,pc", "description": "sets VIDEO6, PC"},
                "10": {"name": "dvd,bd/dvd", "description": "sets DVD, BD/DVD"},
                "12": {"name": "tv", "description": "sets TV"},
                "23": {"name": "cd", "description": "sets TV/CD"},
                "24": {"name": "fm", "description": "sets FM"},
                "25": {"name": "am", "description": "sets AM"},
                "2B": {"name": "network,net", "description": "sets NETWORK, NET"},
                "2E": {"name": "bluetooth", "description": "sets BLUETOOTH"},
                "UP": {"name": "up", "description": "sets Selector Position Wrap-Around Up"},
                "DOWN": {"name": "down", "description": "sets Selector Position Wrap-Around Down"},
                **QUERY,
            },
        },
        "LMD": {
            "name": "listening-mode",
            "description": "Listening Mode Command",
            "values": {
                "00": {"name": "stereo", "description": "sets STEREO"},
                "01": {"name": "direct", "description": "sets DIRECT"},
                "0C": {"name": "all-ch-stereo", "description": "sets ALL CH STEREO"},
                "UP": {"name": "up", "description": "sets Listening Mode Wrap-Around Up"},
                "DOWN": {"name": "down", "description": "sets Listening Mode Wrap-Around Down"},
                **QUERY,
            },
        },
        "NTC": {
            "name": "net-usb",
            "description": "Network/USB Operation Command",
            "values": {
                "PLAY": {"name": "play", "description": "PLAY KEY"},
                "STOP": {"name": "stop", "description": "STOP KEY"},
                "PAUSE": {"name": "pause", "description": "PAUSE KEY"},
                "TRUP": {"name": "trup", "description": "TRACK UP KEY"},
                "TRDN": {"name": "trdn", "description": "TRACK DOWN KEY"},
            },
        },
        "NLS": {
            "name": "net-usb-list-info",
            "description": "NET/USB List Info",
            "values": {**QUERY},
        },
    },
    "zone2": {
        "ZPW": {
            "name": "power",
            "description": "Zone2 Power Command",
            "values": {
                "00": {"name": "standby,off", "description": "sets Zone2 Standby"},
                "01": {"name": "on", "description": "sets Zone2 On"},
                **QUERY,
            },
        },
        "ZMT": {
            "name": "muting,mute",
            "description": "Zone2 Muting Command",
            "values": {
                "00": {"name": "off", "description": "sets Zone2 Muting Off"},
                "01": {"name": "on", "description": "sets Zone2 Muting On"},
                "TG": {"name": "toggle", "description": "sets Zone2 Muting Wrap-Around"},
                **QUERY,
            },
        },
        "ZVL": {
            "name": "volume",
            "description": "Zone2 Volume Command",
            "values": {
                ValueRange(0, 100): {"name": None, "description": "Volume Level 0 - 100"},
                "UP": {"name": "level-up,up", "description": "sets Volume Level Up"},
                "DOWN": {"name": "level-down,down", "description": "sets Volume Level Down"},
                **QUERY,
            },
        },
        "SLZ": {
            "name": "selector,source",
            "description": "ZONE2 Selector Command",
            "values": {
                "10": {"name": "dvd,bd/dvd", "description": "sets DVD, BD/DVD"},
                "23": {"name": "cd", "description": "sets TV/CD"},
                "24": {"name": "fm", "description": "sets FM"},
                "2B": {"name": "network,net", "description": "sets NETWORK, NET"},
                "UP": {"name": "up", "description": "sets Selector Position Wrap-Around Up"},
                "DOWN": {"name": "down", "description": "sets Selector Position Wrap-Around Down"},
                **QUERY,
            },
        },
    },
}

ZONE_MAPPINGS = {
    "": "main",
    "main": "main",
    "zone2": "zone2",
    "z2": "zone2",
}

COMMAND_MAPPINGS = {}
VALUE_MAPPINGS = {}

for _zone, _zone_cmds in COMMANDS.items():
    COMMAND_MAPPINGS[_zone] = {}
    VALUE_MAPPINGS[_zone] = {}
    for _prefix, _cmd in _zone_cmds.items():
        for _alias in _cmd["name"].split(","):
            COMMAND_MAPPINGS[_zone][_alias] = _prefix
        VALUE_MAPPINGS[_zone][_prefix] = {}
        for _value, _info in _cmd["values"].items():
            if isinstance(_value, ValueRange):
                VALUE_MAPPINGS[_zone][_prefix][_value] = _value
                continue
            for _alias in _info["name"].split(","):
                VALUE_MAPPINGS[_zone][_prefix][_alias] = _value
