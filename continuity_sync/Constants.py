# Constants.py
# Description: Constants for the sync engine
#
# Imports
#
# 3rd-Party Imports
#
# Local Imports
#
########################################################################################################################
#
# Functions:

# --- Change categories ---
CATEGORY_SCENES = "scenes"
CATEGORY_CHARACTERS = "characters"
CATEGORY_LOOKS = "looks"
CATEGORY_CAPTURES = "captures"
CATEGORY_SCHEDULE = "schedule"
CATEGORY_CALL_SHEETS = "callSheets"
CATEGORY_SCRIPT = "script"
# Order matters: save_everything() walks the categories in this order.
ALL_CATEGORIES = [CATEGORY_SCENES, CATEGORY_CHARACTERS, CATEGORY_LOOKS, CATEGORY_CAPTURES,
                  CATEGORY_SCHEDULE, CATEGORY_CALL_SHEETS, CATEGORY_SCRIPT]

# --- Remote tables ---
TABLE_PROJECTS = "projects"
TABLE_SCENES = "scenes"
TABLE_CHARACTERS = "characters"
TABLE_LOOKS = "looks"
TABLE_SCENE_CHARACTERS = "scene_characters"
TABLE_LOOK_SCENES = "look_scenes"
TABLE_CONTINUITY_EVENTS = "continuity_events"
TABLE_PHOTOS = "photos"
TABLE_SCHEDULE_DATA = "schedule_data"
TABLE_CALL_SHEET_DATA = "call_sheet_data"
TABLE_SCRIPT_UPLOADS = "script_uploads"

# --- Remote procedures (replace a whole junction set in one transaction) ---
RPC_SYNC_SCENE_CHARACTERS = "sync_scene_characters"
RPC_SYNC_LOOK_SCENES = "sync_look_scenes"

# --- Upsert conflict targets ---
SCENES_CONFLICT_TARGET = "project_id,scene_number"
ID_CONFLICT_TARGET = "id"

# --- Storage ---
DEFAULT_PHOTOS_BUCKET = "continuity-photos"
DEFAULT_DOCUMENTS_BUCKET = "project-documents"
FOLDER_MASTER_REFS = "master-refs"
FOLDER_CAPTURES = "captures"
FOLDER_SCHEDULES = "schedules"
FOLDER_CALL_SHEETS = "call-sheets"
FOLDER_SCRIPTS = "scripts"
CONTENT_TYPE_JPEG = "image/jpeg"
CONTENT_TYPE_PDF = "application/pdf"
EXTENSIONS_BY_CONTENT_TYPE = {
    "image/jpeg": "jpg",
    "image/jpg": "jpg",
    "image/png": "png",
    "image/webp": "webp",
    "application/pdf": "pdf",
}

# --- Photos ---
FIXED_PHOTO_ANGLES = ("front", "left", "right", "back")
ADDITIONAL_PHOTO_ANGLE = "additional"

# --- Timing ---
DEFAULT_DEBOUNCE_SECONDS = 0.8
DEFAULT_HTTP_TIMEOUT_SECONDS = 30.0

#
# End of Constants.py
########################################################################################################################
