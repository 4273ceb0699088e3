"""User-facing strings for the GUI, kept in one place."""


class Strings:
    """Centralized strings for the GUI."""

    # Window
    APP_TITLE = "EP-40 Kit Builder"

    # Output section
    OUTPUT_FOLDER = "OUTPUT FOLDER"
    OUTPUT_HINT = "Select output folder first"
    OUTPUT_NAME = "File name"
    OUTPUT_NAME_HINT = "Leave empty for automatic name"
    BROWSE = "Browse"
    OUTPUT_EXISTS_WARNING = "Warning: {name} already exists and will be overwritten."

    # Options section
    OPTIONS = "EXPORT"
    SAMPLE_RATE = "Sample rate"
    CHANNELS = "Channels"
    MONO = "Mono"
    STEREO = "Stereo"
    FLAT_EXPORT = "Flat WAV (no kit metadata)"
    LIMIT_DURATION = "Limit to {seconds} s"

    OPTIONS_HELP_TITLE = "Export Help"
    OPTIONS_HELP_TEXT = (
        "Sample rate\n"
        "  22050 Hz or 46875 Hz, as used by the EP-40.\n\n"
        "Channels\n"
        "  Mono averages all source channels.\n"
        "  Stereo keeps the first two (mono sources are duplicated).\n\n"
        "Flat WAV\n"
        "  Concatenate the samples in selection order without\n"
        "  key regions. Otherwise a kit is written: samples are\n"
        "  mapped to C4, D4, E4, F4, G4, A4, B4, C5 in selection order.\n\n"
        "Limit\n"
        "  Refuse exports longer than the EP-40 sample time."
    )

    # Input section
    SELECT_INPUT = "SELECT SAMPLES"
    SELECT_FILES = "Select WAV(s)"
    SELECT_FOLDER = "Select Folder"
    INPUT_HINT = "Up to 8 .wav files, mapped to C4..C5"

    # Log section
    EXPORT_LOG = "EXPORT LOG"
    COPY = "Copy"
    COPY_DEBUG = "Copy Debug"
    CLEAR = "Clear"
    LOG_COPIED = "Log copied to clipboard"
    DEBUG_LOG_COPIED = "Debug log copied to clipboard (detailed output)"
    NO_DEBUG_LOG = "No debug log available yet"
    READY_MESSAGE = "Ready. Select output folder to begin."

    # Dialogs
    SELECT_OUTPUT_TITLE = "Select Output Folder"
    SELECT_FILES_TITLE = "Select WAV Samples"
    SELECT_INPUT_FOLDER_TITLE = "Select Folder Containing WAV Samples"
    EXPORT_COMPLETE = "Export Complete"
    EXPORT_FAILED = "Export Failed"
    OK = "OK"

    # Errors
    SELECT_OUTPUT_FIRST = "Please select output folder first"
    NO_FILES_FOUND = "No .wav files found in {folder}"
    TOO_MANY_FILES = "{count} files selected, only the first {slots} are used"

    # Progress
    STARTING_EXPORT = "Exporting {count} sample(s)..."
    ASSIGNED = "  {note} <- {filename}"
    EXPORT_RESULT = "Wrote {name} ({duration:.2f} s)"
