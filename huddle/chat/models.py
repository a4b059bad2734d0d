conversations_sql = """
CREATE TABLE conversations (
    id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
    is_group BOOLEAN NOT NULL DEFAULT FALSE,
    name TEXT,
    image_url TEXT,

    -- NULL for direct conversations
    creator_id UUID REFERENCES profiles(id) ON DELETE SET NULL,
    last_message_id UUID,

    created_at TIMESTAMPTZ DEFAULT now()
);
"""

conversation_members_sql = """
CREATE TABLE conversation_members (
    id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
    conversation_id UUID NOT NULL REFERENCES conversations(id) ON DELETE CASCADE,
    member_id UUID NOT NULL REFERENCES profiles(id) ON DELETE CASCADE,
    last_seen_message_id UUID,
    created_at TIMESTAMPTZ DEFAULT now(),
    UNIQUE (conversation_id, member_id)
);

CREATE INDEX conversation_members_member_idx ON conversation_members (member_id);
CREATE INDEX conversation_members_conversation_idx ON conversation_members (conversation_id);
"""

messages_sql = """
CREATE TYPE message_type AS ENUM ('text', 'image', 'file', 'pdf', 'audio', 'video');

CREATE TABLE messages (
    id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
    conversation_id UUID NOT NULL REFERENCES conversations(id) ON DELETE CASCADE,
    sender_id UUID NOT NULL REFERENCES profiles(id) ON DELETE CASCADE,
    type message_type NOT NULL DEFAULT 'text',
    content TEXT NOT NULL,
    created_at TIMESTAMPTZ DEFAULT now()
);

CREATE INDEX messages_conversation_created_idx ON messages (conversation_id, created_at);

ALTER TABLE conversations
    ADD CONSTRAINT conversations_last_message_fk
    FOREIGN KEY (last_message_id) REFERENCES messages(id) ON DELETE SET NULL;
"""

MESSAGE_COLUMNS = "id, conversation_id, sender_id, type, content, created_at"
CONVERSATION_COLUMNS = "id, is_group, name, image_url, creator_id, last_message_id, created_at"

# Preview text for non-text messages
IMAGE_PREVIEW = "has sent an image."
DOCUMENT_PREVIEW = "has sent a document."


def message_preview(type: str, content: str) -> str:
    if type == "text":
        return content
    if type == "image":
        return IMAGE_PREVIEW
    return DOCUMENT_PREVIEW
