friend_request_sql = """
CREATE TYPE request_status AS ENUM ('pending');

CREATE TABLE friend_requests (
  id UUID PRIMARY KEY DEFAULT gen_random_uuid(),

  sender_id  UUID NOT NULL REFERENCES profiles(id) ON DELETE CASCADE,
  receiver_id  UUID NOT NULL REFERENCES profiles(id) ON DELETE CASCADE,

  status request_status NOT NULL DEFAULT 'pending',

  created_at TIMESTAMPTZ DEFAULT now(),

  -- Prevent A -> B from being sent twice by A
  CONSTRAINT unique_request_pair UNIQUE (sender_id, receiver_id),

  CONSTRAINT prevent_self_request CHECK (sender_id <> receiver_id)
);

CREATE INDEX friend_requests_receiver_status_idx ON friend_requests (receiver_id, status);
"""

friendships_sql = """
CREATE TABLE friendships (
    id UUID PRIMARY KEY DEFAULT gen_random_uuid(),

    user1_id UUID NOT NULL REFERENCES profiles(id) ON DELETE CASCADE,
    user2_id UUID NOT NULL REFERENCES profiles(id) ON DELETE CASCADE,

    status TEXT NOT NULL DEFAULT 'accepted',
    conversation_id UUID REFERENCES conversations(id) ON DELETE SET NULL,

    created_at TIMESTAMPTZ NOT NULL DEFAULT now(),

    -- Prevent duplicates by enforcing canonical ordering
    CONSTRAINT user1_less_than_user2 CHECK (user1_id < user2_id),

    -- Prevent (A,B) OR (B,A) duplicates
    CONSTRAINT unique_friend_pair UNIQUE (user1_id, user2_id)
);
"""

PENDING = "pending"
ACCEPTED = "accepted"

REQUEST_COLUMNS = "id, sender_id, receiver_id, status, created_at"
