import sys

from supabase_backup.runner import main


sys.exit(main())
